# /quizflow/services/database_helpers/attempt_repository_sql.py

"""
This module contains all the raw SQLAlchemy queries for the Attempt and
Answer tables. It is the only place that writes grading state.

Every write is a self-contained, single-statement update keyed by attempt id
(and question id for answers), committed immediately. Writes made on behalf
of a background grading pass pass the pass's `generation`; the statement then
only matches while the attempt still holds that generation, so a pass that
has been superseded by a regrade cannot overwrite the newer pass's state.
"""

from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quizflow.core.exceptions import PersistenceError
from quizflow.db.models.attempt_models import Attempt, Answer


class AttemptRepositorySQL:
    def __init__(self, db_session: Session):
        self.db = db_session

    @contextmanager
    def _write(self, description: str):
        """Runs a write and commits it, converting driver errors into PersistenceError."""
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to {description}: {e}") from e

    def _generation_guard(self, attempt_id: str, generation: Optional[int]):
        return select(Attempt.id).where(
            Attempt.id == attempt_id, Attempt.grading_generation == generation
        ).exists()

    # --- Attempt Methods ---

    def add_attempt(self, record: Dict) -> Attempt:
        new_attempt = Attempt(**record)
        with self._write("create attempt"):
            self.db.add(new_attempt)
        self.db.refresh(new_attempt)
        return new_attempt

    def get_attempt(self, attempt_id: str) -> Optional[Attempt]:
        return self.db.query(Attempt).filter(Attempt.id == attempt_id).first()

    def get_attempts_for_journey(self, journey_id: str) -> List[Attempt]:
        """Attempts of a journey, oldest first."""
        return (
            self.db.query(Attempt)
            .filter(Attempt.journey_id == journey_id)
            .order_by(Attempt.started_at.asc(), Attempt.submitted_at.asc())
            .all()
        )

    def get_attempt_ids_in_assignment(self, assignment_id: str, attempt_ids: Iterable[str]) -> List[str]:
        """Returns the subset of `attempt_ids` that belong to the assignment."""
        ids = list(attempt_ids)
        if not ids:
            return []
        rows = self.db.execute(
            select(Attempt.id).where(Attempt.assignment_id == assignment_id, Attempt.id.in_(ids))
        ).scalars().all()
        return list(rows)

    def update_attempt(self, attempt_id: str, fields: Dict, generation: Optional[int] = None) -> bool:
        """
        Updates one attempt row. With `generation` the update only applies while
        the attempt still belongs to that grading pass. Returns whether a row changed.
        """
        stmt = update(Attempt).where(Attempt.id == attempt_id)
        if generation is not None:
            stmt = stmt.where(Attempt.grading_generation == generation)
        stmt = stmt.values(**fields).execution_options(synchronize_session=False)
        with self._write(f"update attempt {attempt_id}"):
            result = self.db.execute(stmt)
        return result.rowcount > 0

    def start_new_generation(self, attempt_id: str, fields: Dict) -> Optional[int]:
        """
        Claims the attempt for a new grading pass: bumps `grading_generation`
        and applies `fields` in the same statement. Returns the new generation,
        or None when the attempt does not exist.
        """
        stmt = (
            update(Attempt)
            .where(Attempt.id == attempt_id)
            .values(grading_generation=Attempt.grading_generation + 1, **fields)
            .execution_options(synchronize_session=False)
        )
        with self._write(f"reset attempt {attempt_id}"):
            result = self.db.execute(stmt)
        if result.rowcount == 0:
            return None
        return self.db.execute(
            select(Attempt.grading_generation).where(Attempt.id == attempt_id)
        ).scalar_one_or_none()

    def delete_attempt(self, attempt_id: str) -> int:
        with self._write(f"delete attempt {attempt_id}"):
            result = self.db.execute(delete(Attempt).where(Attempt.id == attempt_id))
        return result.rowcount

    # --- Answer Methods ---

    def add_answers(self, records: List[Dict]) -> None:
        with self._write("create answers"):
            self.db.add_all([Answer(**record) for record in records])

    def get_answers(self, attempt_id: str) -> List[Answer]:
        return self.db.query(Answer).filter(Answer.attempt_id == attempt_id).all()

    def update_answer(self, attempt_id: str, question_id: str, fields: Dict, generation: Optional[int] = None) -> bool:
        """Updates the answer for one question of an attempt, guarded by `generation` when given."""
        stmt = update(Answer).where(Answer.attempt_id == attempt_id, Answer.question_id == question_id)
        if generation is not None:
            stmt = stmt.where(self._generation_guard(attempt_id, generation))
        stmt = stmt.values(**fields).execution_options(synchronize_session=False)
        with self._write(f"update answer {attempt_id}/{question_id}"):
            result = self.db.execute(stmt)
        return result.rowcount > 0

    def reset_answers(self, attempt_id: str) -> int:
        """Clears every grading outcome on the attempt's answers; raw responses are kept."""
        stmt = (
            update(Answer)
            .where(Answer.attempt_id == attempt_id)
            .values(score=None, is_correct=None, ai_feedback=None, ai_graded_at=None,
                    grading_error=None, flag_results=None)
            .execution_options(synchronize_session=False)
        )
        with self._write(f"reset answers of {attempt_id}"):
            result = self.db.execute(stmt)
        return result.rowcount

    def fail_unscored_answers(self, attempt_id: str, question_ids: List[str], fields: Dict, generation: int) -> int:
        """
        Writes `fields` onto answers among `question_ids` that still have no
        score, so an attempt can finalize without leaving pending answers behind.
        """
        if not question_ids:
            return 0
        stmt = (
            update(Answer)
            .where(
                Answer.attempt_id == attempt_id,
                Answer.question_id.in_(question_ids),
                Answer.score.is_(None),
                self._generation_guard(attempt_id, generation),
            )
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        with self._write(f"finalize unscored answers of {attempt_id}"):
            result = self.db.execute(stmt)
        return result.rowcount

    def delete_answers(self, attempt_id: str) -> int:
        with self._write(f"delete answers of {attempt_id}"):
            result = self.db.execute(delete(Answer).where(Answer.attempt_id == attempt_id))
        return result.rowcount
