# /quizflow/db/database.py

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ..core.config import DATABASE_URL


def _engine_options(url: str) -> dict:
    # SQLite connections are shared between the request thread and background grading.
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Request handlers get a session from `get_db`; background grading opens its
# own through this factory because it outlives the request.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency yielding one session per request."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_all_tables():
    """Creates every registered table. Used on startup for SQLite deployments and in tests."""
    from .base import Base
    Base.metadata.create_all(bind=engine)
