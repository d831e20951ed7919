# /quizflow/db/base.py

# This file acts as a central registry for all our SQLAlchemy models.
# Importing them here guarantees that Base.metadata knows every table
# before create_all() runs.

from .base_class import Base

from .models.assignment_models import Teacher, Assignment, QuizSession, Question, LevelRedirect
from .models.attempt_models import Attempt, Answer
from .models.journey_models import StudentJourney
