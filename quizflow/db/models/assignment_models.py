# /quizflow/db/models/assignment_models.py

"""
This module defines the SQLAlchemy ORM models for the authored side of the
platform: the `Teacher` who owns an `Assignment`, the ordered `QuizSession`s of
a multi-session assignment, the `Question`s themselves, and the per-level
`LevelRedirect` content shown once an attempt is finalized.

All of these rows are written before any attempt exists and are read-only
from the grading engine's point of view.
"""

from sqlalchemy import Column, String, Integer, Boolean, JSON, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..base_class import Base


class Teacher(Base):
    """
    SQLAlchemy model linking an identity-provider user to a teacher profile.
    Ownership checks resolve `user_id` -> teacher -> assignment.
    """
    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    assignments = relationship("Assignment", back_populates="teacher")


class Assignment(Base):
    """
    SQLAlchemy model representing a quiz authored by a teacher.
    """
    id = Column(String, primary_key=True, index=True)
    teacher_id = Column(String, ForeignKey("teachers.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    status = Column(String, nullable=False, default="draft")
    show_correct_answers = Column(Boolean, nullable=False, default=False)
    show_ai_feedback = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    teacher = relationship("Teacher", back_populates="assignments")
    sessions = relationship("QuizSession", back_populates="assignment", order_by="QuizSession.order_index")
    questions = relationship("Question", back_populates="assignment", order_by="Question.order_index")


class QuizSession(Base):
    """
    One step of a multi-session journey. Sessions are ordered by `order_index`
    within their assignment.
    """
    __tablename__ = "sessions"

    id = Column(String, primary_key=True, index=True)
    assignment_id = Column(String, ForeignKey("assignments.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    assignment = relationship("Assignment", back_populates="sessions")


class Question(Base):
    """
    A single authored question. The type-specific scoring configuration lives
    in loosely-typed JSON columns (`choices`, `slider_config`,
    `image_map_config`) and is validated into typed records at the grading
    boundary, never here.
    """
    id = Column(String, primary_key=True, index=True)
    assignment_id = Column(String, ForeignKey("assignments.id"), nullable=False, index=True)
    session_id = Column(String, ForeignKey("sessions.id"), nullable=True, index=True)
    type = Column(String, nullable=False)
    prompt = Column(String, nullable=False, default="")
    choices = Column(JSON, nullable=True)
    correct_choice = Column(String, nullable=True)
    reference_answer = Column(String, nullable=True)
    rubric = Column(String, nullable=True)
    points = Column(Integer, nullable=False, default=1)
    has_correct_answer = Column(Boolean, nullable=False, default=True)
    order_index = Column(Integer, nullable=False, default=0)
    image_url = Column(String, nullable=True)
    slider_config = Column(JSON, nullable=True)
    image_map_config = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    assignment = relationship("Assignment", back_populates="questions")


class LevelRedirect(Base):
    """
    Content shown to a student after finalization, keyed by assignment, level
    and (optionally) session. A row with `session_id = NULL` is the final,
    journey-wide redirect.
    """
    __tablename__ = "level_redirects"

    id = Column(String, primary_key=True, index=True)
    assignment_id = Column(String, ForeignKey("assignments.id"), nullable=False, index=True)
    session_id = Column(String, ForeignKey("sessions.id"), nullable=True)
    level = Column(String, nullable=False)
    redirect_type = Column(String, nullable=False, default="link")
    redirect_url = Column(String, nullable=True)
    embed_code = Column(String, nullable=True)
