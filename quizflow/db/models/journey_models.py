# /quizflow/db/models/journey_models.py

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func

from ..base_class import Base


class StudentJourney(Base):
    """
    A student's run through the ordered sessions of one assignment.

    `total_score`, `max_score` and `overall_level` are a cache of the sum over
    the journey's attempts. They are recomputed on read and are never the
    source of truth.
    """
    __tablename__ = "student_journeys"

    id = Column(String, primary_key=True, index=True)
    assignment_id = Column(String, ForeignKey("assignments.id"), nullable=False, index=True)
    share_link_id = Column(String, nullable=True)
    student_name = Column(String, nullable=True)
    student_email = Column(String, nullable=True)

    current_session_index = Column(Integer, nullable=False, default=0)
    overall_status = Column(String, nullable=False, default="in_progress")
    overall_level = Column(String, nullable=True)
    total_score = Column(Integer, nullable=False, default=0)
    max_score = Column(Integer, nullable=False, default=0)

    started_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
