# /quizflow/services/database_helpers/journey_repository_sql.py

from typing import Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quizflow.core.exceptions import PersistenceError
from quizflow.db.models.journey_models import StudentJourney


class JourneyRepositorySQL:
    def __init__(self, db_session: Session):
        self.db = db_session

    def add_journey(self, record: Dict) -> StudentJourney:
        new_journey = StudentJourney(**record)
        try:
            self.db.add(new_journey)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to create journey: {e}") from e
        self.db.refresh(new_journey)
        return new_journey

    def get_journey(self, journey_id: str) -> Optional[StudentJourney]:
        return self.db.query(StudentJourney).filter(StudentJourney.id == journey_id).first()

    def update_journey(self, journey_id: str, fields: Dict) -> bool:
        stmt = (
            update(StudentJourney)
            .where(StudentJourney.id == journey_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to update journey {journey_id}: {e}") from e
        return result.rowcount > 0
