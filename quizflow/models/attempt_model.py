# /quizflow/models/attempt_model.py

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Dict, Union, Any, Literal
from enum import Enum
from datetime import datetime

# --- Core Enumerations ---
class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"; SUBMITTED = "submitted"; GRADING = "grading"; GRADED = "graded"

class BulkAction(str, Enum):
    DELETE = "delete"; REGRADE = "regrade"

# --- Submission Contract ---

class AnswerSubmission(BaseModel):
    """
    One raw response. Only the field matching the question type is read:
    `selectedChoice` (or `selectedChoices`) for mcq, `answerText` for open,
    `sliderValue` for slider, `imageMapAnswers` (flag id -> answer) for image_map.
    """
    model_config = ConfigDict(from_attributes=True)
    questionId: str = Field(..., min_length=1)
    selectedChoice: Optional[str] = None
    selectedChoices: Optional[List[str]] = None
    answerText: Optional[str] = None
    # Kept loose so a non-numeric slider entry scores 0 instead of failing the request.
    sliderValue: Optional[Union[float, str]] = None
    imageMapAnswers: Optional[Dict[str, Any]] = None

class SubmitAttemptRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    assignmentId: str = Field(..., min_length=1)
    sessionId: Optional[str] = None
    journeyId: Optional[str] = None
    shareLinkId: Optional[str] = None
    studentName: Optional[str] = None
    studentEmail: Optional[str] = None
    answers: List[AnswerSubmission] = Field(default_factory=list)

    @field_validator('journeyId')
    @classmethod
    def journey_requires_session(cls, v, info):
        if v and not info.data.get('sessionId'):
            raise ValueError('A journey submission must name its session.')
        return v

class SubmitAttemptResponse(BaseModel):
    attemptId: str
    status: AttemptStatus
    isFinal: bool
    provisionalLevel: str
    mcqScore: int
    mcqTotal: int
    maxScore: int
    gradingTotal: int

# --- Regrade / Delete / Bulk Contracts ---

class OperationResult(BaseModel):
    id: str
    success: bool
    error: Optional[str] = None
    errorCode: Optional[str] = None

class BulkActionRequest(BaseModel):
    action: BulkAction
    attemptIds: List[str] = Field(..., min_length=1)
    assignmentId: str = Field(..., min_length=1)

class BulkActionResponse(BaseModel):
    success: bool
    processed: int
    succeeded: int
    failed: int
    invalidIds: List[str] = Field(default_factory=list)
    results: List[OperationResult] = Field(default_factory=list)

# --- Result Polling Contract ---

class AnswerResult(BaseModel):
    questionId: str
    questionPrompt: Optional[str] = None
    questionType: str
    points: int
    selectedChoice: Optional[str] = None
    selectedChoices: Optional[List[str]] = None
    answerText: Optional[str] = None
    sliderValue: Optional[float] = None
    imageMapAnswers: Optional[Dict[str, Any]] = None
    isCorrect: Optional[bool] = None
    score: Optional[int] = None
    aiFeedback: Optional[str] = None
    aiGradedAt: Optional[datetime] = None
    gradingError: Optional[str] = None
    flagResults: Optional[List[Dict[str, Any]]] = None

class RedirectInfo(BaseModel):
    type: Literal["link", "embed"]
    url: Optional[str] = None
    embedCode: Optional[str] = None

class AttemptResultResponse(BaseModel):
    attemptId: str
    assignmentId: str
    sessionId: Optional[str] = None
    journeyId: Optional[str] = None
    studentName: Optional[str] = None
    status: AttemptStatus
    isFinal: bool
    mcqScore: int
    mcqTotal: int
    openScore: int
    openTotal: int
    totalScore: int
    maxScore: int
    percentage: int
    level: Optional[str] = None
    gradingProgress: int
    gradingTotal: int
    submittedAt: Optional[datetime] = None
    answers: List[AnswerResult] = Field(default_factory=list)
    redirect: Optional[RedirectInfo] = None

class EmbedContentResponse(BaseModel):
    attemptId: str
    level: str
    embedCode: str
