# /quizflow/services/database_helpers/assignment_repository_sql.py

"""
Read-side queries for the authored content: assignments, their ordered
sessions and questions, the owning teacher, and level redirects. The grading
engine never writes these tables; the `add_*` methods exist for seeding and
authoring tools.
"""

from typing import List, Optional
from sqlalchemy.orm import Session

from quizflow.db.models.assignment_models import Teacher, Assignment, QuizSession, Question, LevelRedirect


class AssignmentRepositorySQL:
    def __init__(self, db_session: Session):
        self.db = db_session

    # --- Teacher & Assignment ---

    def get_teacher_by_user_id(self, user_id: str) -> Optional[Teacher]:
        return self.db.query(Teacher).filter(Teacher.user_id == user_id).first()

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        return self.db.query(Assignment).filter(Assignment.id == assignment_id).first()

    # --- Sessions ---

    def get_sessions_for_assignment(self, assignment_id: str) -> List[QuizSession]:
        """Sessions of an assignment in journey order."""
        return (
            self.db.query(QuizSession)
            .filter(QuizSession.assignment_id == assignment_id)
            .order_by(QuizSession.order_index.asc())
            .all()
        )

    def get_session(self, session_id: str) -> Optional[QuizSession]:
        return self.db.query(QuizSession).filter(QuizSession.id == session_id).first()

    # --- Questions ---

    def get_questions(self, assignment_id: str, session_id: Optional[str] = None) -> List[Question]:
        """
        Questions of an assignment in authored order. When `session_id` is
        given only that session's questions are returned.
        """
        query = self.db.query(Question).filter(Question.assignment_id == assignment_id)
        if session_id is not None:
            query = query.filter(Question.session_id == session_id)
        return query.order_by(Question.order_index.asc()).all()

    # --- Level Redirects ---

    def get_level_redirect(self, assignment_id: str, level: str, session_id: Optional[str] = None) -> Optional[LevelRedirect]:
        """
        Looks up the redirect for a level. `session_id=None` selects the
        journey-wide (final) redirect.
        """
        query = self.db.query(LevelRedirect).filter(
            LevelRedirect.assignment_id == assignment_id,
            LevelRedirect.level == level,
        )
        if session_id is None:
            query = query.filter(LevelRedirect.session_id.is_(None))
        else:
            query = query.filter(LevelRedirect.session_id == session_id)
        return query.first()

    # --- Authoring helpers ---

    def add_record(self, record):
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def add_records(self, records: List) -> None:
        self.db.add_all(records)
        self.db.commit()
