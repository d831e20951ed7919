# /quizflow/models/journey_model.py

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Literal
from enum import Enum
from datetime import datetime

from .attempt_model import RedirectInfo

# --- Core Enumerations ---
class JourneyStatus(str, Enum):
    IN_PROGRESS = "in_progress"; COMPLETED = "completed"

class SessionProgress(str, Enum):
    COMPLETED = "completed"; IN_PROGRESS = "in_progress"; LOCKED = "locked"

# --- Request Contracts ---

class StartJourneyRequest(BaseModel):
    assignmentId: str = Field(..., min_length=1)
    shareLinkId: Optional[str] = None
    studentName: Optional[str] = None
    studentEmail: Optional[str] = None

class JourneyActionRequest(BaseModel):
    action: Literal["advance"]

# --- Response Contracts ---

class SessionInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    title: str
    description: Optional[str] = None
    order_index: int

class StartJourneyResponse(BaseModel):
    journeyId: str
    firstSessionId: Optional[str] = None
    sessions: List[SessionInfo] = Field(default_factory=list)
    totalSessions: int

class JourneyInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    assignment_id: str
    student_name: Optional[str] = None
    current_session_index: int
    overall_status: JourneyStatus
    overall_level: Optional[str] = None
    total_score: int
    max_score: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class SessionStatusEntry(BaseModel):
    session: SessionInfo
    status: SessionProgress
    attemptId: Optional[str] = None
    score: Optional[int] = None
    maxScore: Optional[int] = None
    level: Optional[str] = None

class JourneyStatusResponse(BaseModel):
    journey: JourneyInfo
    sessions: List[SessionStatusEntry] = Field(default_factory=list)
    currentSession: Optional[SessionInfo] = None
    totalSessions: int
    completedSessions: int

class AdvanceJourneyResponse(BaseModel):
    isComplete: bool
    nextSessionId: Optional[str] = None
    nextSessionTitle: Optional[str] = None

class SessionResult(BaseModel):
    session: SessionInfo
    attemptId: Optional[str] = None
    score: int
    maxScore: int
    level: Optional[str] = None
    isComplete: bool

class JourneyRollup(BaseModel):
    totalScore: int
    maxScore: int
    percentage: int
    overallLevel: str
    completedSessions: int
    totalSessions: int

class JourneySummaryResponse(BaseModel):
    journey: JourneyInfo
    assignmentTitle: str
    sessionResults: List[SessionResult] = Field(default_factory=list)
    summary: JourneyRollup
    finalRedirect: Optional[RedirectInfo] = None
