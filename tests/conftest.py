# /tests/conftest.py

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quizflow.db.base import Base
from quizflow.db.models.assignment_models import Teacher, Assignment, QuizSession, LevelRedirect
from quizflow.services.database_service import DatabaseService
from quizflow.services.attempt_service import AttemptService
from tests.helpers import FakeJudge, add_question


# --- Database Fixtures ---

@pytest.fixture
def session_factory():
    """A fresh in-memory SQLite database per test, shared across sessions through StaticPool."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def db_service(db_session):
    return DatabaseService(db_session)


@pytest.fixture
def judge():
    return FakeJudge()


@pytest.fixture
def attempt_service(db_service, judge):
    return AttemptService(db_service, judge=judge, inter_call_delay=0, flag_delay=0, retries=2, retry_delay=0)


# --- Seed Data ---

@pytest.fixture
def teacher(db_service):
    return db_service.add_record(Teacher(id="tch_1", user_id="user_teacher", name="Ms Rivera", email="rivera@example.com"))


@pytest.fixture
def assignment(db_service, teacher):
    return db_service.add_record(Assignment(id="asg_1", teacher_id=teacher.id, title="Cell Biology", status="published"))


@pytest.fixture
def mixed_quiz(db_service, assignment):
    """One mcq (2 pts, correct "a") and one open question (3 pts)."""
    mcq = add_question(db_service, "q_mcq", "mcq", points=2, order_index=0,
                       choices=[{"id": "a", "text": "Mitochondria"}, {"id": "b", "text": "Ribosome"}],
                       correct_choice="a")
    open_q = add_question(db_service, "q_open", "open", points=3, order_index=1,
                          reference_answer="It produces energy for the cell.")
    return [mcq, open_q]


@pytest.fixture
def deterministic_quiz(db_service, assignment):
    """Only immediately gradable questions: one mcq and one slider."""
    mcq = add_question(db_service, "q_mcq", "mcq", points=2, order_index=0,
                       choices=[{"id": "a", "text": "A"}, {"id": "b", "text": "B"}], correct_choice="a")
    slider = add_question(db_service, "q_slider", "slider", points=2, order_index=1,
                          slider_config={"min": 0, "max": 100, "step": 1, "correct_value": 37, "tolerance": 2})
    return [mcq, slider]


@pytest.fixture
def journey_assignment(db_service, assignment):
    """Two sessions, each with a single mcq question, plus a final link redirect per level."""
    sessions = [
        db_service.add_record(QuizSession(id="ses_1", assignment_id=assignment.id, title="Part 1", order_index=0)),
        db_service.add_record(QuizSession(id="ses_2", assignment_id=assignment.id, title="Part 2", order_index=1)),
    ]
    add_question(db_service, "q_s1", "mcq", points=2, order_index=0, session_id="ses_1",
                 choices=[{"id": "a", "text": "A"}, {"id": "b", "text": "B"}], correct_choice="a")
    add_question(db_service, "q_s2", "mcq", points=3, order_index=0, session_id="ses_2",
                 choices=[{"id": "a", "text": "A"}, {"id": "b", "text": "B"}], correct_choice="b")
    db_service.add_records([
        LevelRedirect(id=f"red_{level}", assignment_id=assignment.id, session_id=None, level=level,
                      redirect_type="link", redirect_url=f"https://example.com/{level}")
        for level in ("beginner", "intermediate", "advanced")
    ])
    return sessions
