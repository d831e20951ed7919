# /quizflow/services/database_service.py

from typing import Dict, Generator, Iterable, List, Optional
from sqlalchemy.orm import Session
from fastapi import Depends

# --- Core Database Setup ---
from quizflow.db.database import get_db

# --- Repository Imports ---
from .database_helpers.assignment_repository_sql import AssignmentRepositorySQL
from .database_helpers.attempt_repository_sql import AttemptRepositorySQL
from .database_helpers.journey_repository_sql import JourneyRepositorySQL


class DatabaseService:
    def __init__(self, db_session: Session):
        """
        Facade over the SQL repositories. Services depend on this class only,
        and receive it explicitly rather than reaching for a module-level session.
        """
        self.session = db_session
        self.assignment_repo = AssignmentRepositorySQL(db_session)
        self.attempt_repo = AttemptRepositorySQL(db_session)
        self.journey_repo = JourneyRepositorySQL(db_session)

    def close(self):
        self.session.close()

    # --- ASSIGNMENT, SESSION & QUESTION METHODS (DELEGATED) ---
    def get_teacher_by_user_id(self, user_id: str): return self.assignment_repo.get_teacher_by_user_id(user_id)
    def get_assignment(self, assignment_id: str): return self.assignment_repo.get_assignment(assignment_id)
    def get_sessions_for_assignment(self, assignment_id: str) -> List: return self.assignment_repo.get_sessions_for_assignment(assignment_id)
    def get_session(self, session_id: str): return self.assignment_repo.get_session(session_id)
    def get_questions(self, assignment_id: str, session_id: Optional[str] = None) -> List: return self.assignment_repo.get_questions(assignment_id, session_id)
    def get_level_redirect(self, assignment_id: str, level: str, session_id: Optional[str] = None): return self.assignment_repo.get_level_redirect(assignment_id, level, session_id)
    def add_record(self, record): return self.assignment_repo.add_record(record)
    def add_records(self, records: List): return self.assignment_repo.add_records(records)

    # --- ATTEMPT & ANSWER METHODS (DELEGATED) ---
    def add_attempt(self, record: Dict): return self.attempt_repo.add_attempt(record)
    def get_attempt(self, attempt_id: str): return self.attempt_repo.get_attempt(attempt_id)
    def get_attempts_for_journey(self, journey_id: str) -> List: return self.attempt_repo.get_attempts_for_journey(journey_id)
    def get_attempt_ids_in_assignment(self, assignment_id: str, attempt_ids: Iterable[str]) -> List[str]: return self.attempt_repo.get_attempt_ids_in_assignment(assignment_id, attempt_ids)
    def update_attempt(self, attempt_id: str, fields: Dict, generation: Optional[int] = None) -> bool: return self.attempt_repo.update_attempt(attempt_id, fields, generation)
    def start_new_grading_generation(self, attempt_id: str, fields: Dict) -> Optional[int]: return self.attempt_repo.start_new_generation(attempt_id, fields)
    def delete_attempt(self, attempt_id: str) -> int: return self.attempt_repo.delete_attempt(attempt_id)
    def add_answers(self, records: List[Dict]): return self.attempt_repo.add_answers(records)
    def get_answers(self, attempt_id: str) -> List: return self.attempt_repo.get_answers(attempt_id)
    def update_answer(self, attempt_id: str, question_id: str, fields: Dict, generation: Optional[int] = None) -> bool: return self.attempt_repo.update_answer(attempt_id, question_id, fields, generation)
    def reset_answers(self, attempt_id: str) -> int: return self.attempt_repo.reset_answers(attempt_id)
    def fail_unscored_answers(self, attempt_id: str, question_ids: List[str], fields: Dict, generation: int) -> int: return self.attempt_repo.fail_unscored_answers(attempt_id, question_ids, fields, generation)
    def delete_answers(self, attempt_id: str) -> int: return self.attempt_repo.delete_answers(attempt_id)

    # --- JOURNEY METHODS (DELEGATED) ---
    def add_journey(self, record: Dict): return self.journey_repo.add_journey(record)
    def get_journey(self, journey_id: str): return self.journey_repo.get_journey(journey_id)
    def update_journey(self, journey_id: str, fields: Dict) -> bool: return self.journey_repo.update_journey(journey_id, fields)


def get_db_service(db: Session = Depends(get_db)) -> Generator[DatabaseService, None, None]:
    """FastAPI dependency that provides a DatabaseService bound to the request's session."""
    yield DatabaseService(db_session=db)
