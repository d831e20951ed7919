# /quizflow/core/exceptions.py

"""
Error taxonomy shared by the services and routers.

Services raise these; routers translate them into HTTP responses. Transient
judge failures (`GradingError`) never leave the AI grader: they are converted
into a zero-score result carrying an error marker.
"""


class QuizflowError(Exception):
    """Base class for all domain errors raised by the backend."""


class InputValidationError(QuizflowError, ValueError):
    """Missing ids or malformed answer payloads, rejected before grading."""


class AuthorizationError(QuizflowError):
    """The caller does not own the resource it is trying to mutate."""


class NotFoundError(QuizflowError):
    """A referenced attempt, question, assignment or journey does not exist."""


class PersistenceError(QuizflowError):
    """A write to the store failed."""


class GradingError(QuizflowError):
    """A single judge invocation failed to produce a usable grade."""

    API_ERROR = "API_ERROR"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    PARSE_ERROR = "PARSE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    def __init__(self, message: str, code: str, cause: Exception = None):
        super().__init__(message)
        self.code = code
        self.cause = cause
