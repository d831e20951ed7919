# /quizflow/db/models/attempt_models.py

"""
This module defines the SQLAlchemy ORM models for the `Attempt` and `Answer`
entities: one submission and its per-question responses.

Both rows are mutated only by the grading pipeline. `Attempt.grading_generation`
identifies the grading pass that currently owns the attempt; background writes
from an older pass are refused by the repository.
"""

from sqlalchemy import Column, String, Integer, Float, Boolean, JSON, DateTime, ForeignKey
from sqlalchemy.sql import func

from ..base_class import Base


class Attempt(Base):
    """
    SQLAlchemy model representing one student submission.

    Invariants maintained by the lifecycle manager:
    - `total_score == mcq_score + open_score`
    - `is_final` is true only once every AI-graded answer has a score and
      `status == "graded"`.
    """
    id = Column(String, primary_key=True, index=True)
    assignment_id = Column(String, ForeignKey("assignments.id"), nullable=False, index=True)
    session_id = Column(String, ForeignKey("sessions.id"), nullable=True, index=True)
    journey_id = Column(String, ForeignKey("student_journeys.id"), nullable=True, index=True)
    share_link_id = Column(String, nullable=True)
    student_name = Column(String, nullable=True)
    student_email = Column(String, nullable=True)

    status = Column(String, nullable=False, default="in_progress", index=True)
    started_at = Column(DateTime(timezone=True), server_default=func.now())
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    # Immediate (deterministic) and AI-graded buckets.
    mcq_score = Column(Integer, nullable=False, default=0)
    mcq_total = Column(Integer, nullable=False, default=0)
    open_score = Column(Integer, nullable=False, default=0)
    open_total = Column(Integer, nullable=False, default=0)
    total_score = Column(Integer, nullable=False, default=0)
    max_score = Column(Integer, nullable=False, default=0)
    level = Column(String, nullable=True)
    is_final = Column(Boolean, nullable=False, default=False)

    grading_progress = Column(Integer, nullable=False, default=0)
    grading_total = Column(Integer, nullable=False, default=0)
    grading_generation = Column(Integer, nullable=False, default=1)


class Answer(Base):
    """
    One row per (attempt, question). Holds the raw response in the column that
    matches the question type, plus the grading outcome.
    """
    id = Column(String, primary_key=True, index=True)
    attempt_id = Column(String, ForeignKey("attempts.id"), nullable=False, index=True)
    question_id = Column(String, ForeignKey("questions.id"), nullable=False, index=True)

    selected_choice = Column(String, nullable=True)
    selected_choices = Column(JSON, nullable=True)
    answer_text = Column(String, nullable=True)
    slider_value = Column(Float, nullable=True)
    image_map_answers = Column(JSON, nullable=True)

    is_correct = Column(Boolean, nullable=True)
    score = Column(Integer, nullable=True)
    ai_feedback = Column(String, nullable=True)
    ai_graded_at = Column(DateTime(timezone=True), nullable=True)
    grading_error = Column(String, nullable=True)
    flag_results = Column(JSON, nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())
