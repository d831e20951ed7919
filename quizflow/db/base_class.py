# /quizflow/db/base_class.py

from sqlalchemy.orm import declarative_base, declared_attr


class CustomBase:
    """
    Shared declarative base. Models that do not set `__tablename__` get the
    pluralised lowercase class name (e.g. `Attempt` -> `attempts`).
    """

    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower() + "s"


Base = declarative_base(cls=CustomBase)
