# /quizflow/services/journey_service.py

"""
Multi-session journeys: a student's walk through the ordered sessions of one
assignment.

The journey row's `total_score / max_score / overall_level` are a cache. The
source of truth is the set of attempts that belong to the journey, one per
session (the latest one when a session was submitted more than once). The
cache is recomputed on every summary read and after an attempt finalizes.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import Depends

from ..core.exceptions import InputValidationError, NotFoundError, PersistenceError
from ..models.journey_model import JourneyStatus, SessionProgress, StartJourneyRequest
from .database_service import DatabaseService, get_db_service
from .grading.level_calculator import calculate_level, calculate_percentage
from . import redirect_service

logger = logging.getLogger(__name__)


def _journey_info(journey) -> Dict:
    return {
        "id": journey.id,
        "assignment_id": journey.assignment_id,
        "student_name": journey.student_name,
        "current_session_index": journey.current_session_index,
        "overall_status": journey.overall_status,
        "overall_level": journey.overall_level,
        "total_score": journey.total_score,
        "max_score": journey.max_score,
        "started_at": journey.started_at,
        "completed_at": journey.completed_at,
    }


def _session_info(session) -> Dict:
    return {
        "id": session.id,
        "title": session.title,
        "description": session.description,
        "order_index": session.order_index,
    }


class JourneyService:
    def __init__(self, db: DatabaseService):
        self.db = db

    # --- Internal helpers ---

    def _get_journey_or_raise(self, journey_id: str):
        journey = self.db.get_journey(journey_id)
        if not journey:
            raise NotFoundError(f"Journey {journey_id} not found.")
        return journey

    def _attempts_by_session(self, journey_id: str) -> Dict[str, object]:
        """Latest attempt of each session; attempts come back oldest first."""
        return {a.session_id: a for a in self.db.get_attempts_for_journey(journey_id) if a.session_id}

    @staticmethod
    def _rollup(sessions: List, attempts: Dict[str, object]) -> Dict:
        total_score = 0
        max_score = 0
        completed = 0
        for session in sessions:
            attempt = attempts.get(session.id)
            if attempt is None:
                continue
            total_score += attempt.total_score or 0
            max_score += attempt.max_score or 0
            if attempt.is_final:
                completed += 1
        return {
            "total_score": total_score,
            "max_score": max_score,
            "overall_level": calculate_level(total_score, max_score).value,
            "completed_sessions": completed,
        }

    def _store_rollup(self, journey, rollup: Dict) -> None:
        cached = (journey.total_score, journey.max_score, journey.overall_level)
        fresh = (rollup["total_score"], rollup["max_score"], rollup["overall_level"])
        if cached == fresh:
            return
        try:
            self.db.update_journey(journey.id, {
                "total_score": rollup["total_score"],
                "max_score": rollup["max_score"],
                "overall_level": rollup["overall_level"],
            })
        except PersistenceError as e:
            # The rollup is recomputed on every read, a failed cache write only delays it.
            logger.warning("[Journey] Could not refresh rollup of %s: %s", journey.id, e)

    # --- Public operations ---

    def start_journey(self, request: StartJourneyRequest) -> Dict:
        assignment = self.db.get_assignment(request.assignmentId)
        if not assignment:
            raise NotFoundError(f"Assignment {request.assignmentId} not found.")
        if assignment.status != "published":
            raise InputValidationError("This assignment is not open for submissions.")

        sessions = self.db.get_sessions_for_assignment(assignment.id)
        if not sessions:
            raise InputValidationError("This assignment has no sessions.")

        journey = self.db.add_journey({
            "id": f"jrn_{uuid.uuid4().hex[:16]}",
            "assignment_id": assignment.id,
            "share_link_id": request.shareLinkId,
            "student_name": request.studentName,
            "student_email": request.studentEmail,
            "current_session_index": 0,
            "overall_status": JourneyStatus.IN_PROGRESS.value,
            "total_score": 0,
            "max_score": 0,
        })
        logger.info("[Journey] Started %s for assignment %s (%d sessions)", journey.id, assignment.id, len(sessions))

        return {
            "journeyId": journey.id,
            "firstSessionId": sessions[0].id,
            "sessions": [_session_info(s) for s in sessions],
            "totalSessions": len(sessions),
        }

    def get_journey_status(self, journey_id: str) -> Dict:
        journey = self._get_journey_or_raise(journey_id)
        sessions = self.db.get_sessions_for_assignment(journey.assignment_id)
        attempts = self._attempts_by_session(journey_id)

        entries = []
        for index, session in enumerate(sessions):
            attempt = attempts.get(session.id)
            if attempt is not None and attempt.is_final:
                progress = SessionProgress.COMPLETED
            elif attempt is not None or index == journey.current_session_index:
                progress = SessionProgress.IN_PROGRESS
            else:
                progress = SessionProgress.LOCKED
            entries.append({
                "session": _session_info(session),
                "status": progress.value,
                "attemptId": attempt.id if attempt else None,
                "score": attempt.total_score if attempt else None,
                "maxScore": attempt.max_score if attempt else None,
                "level": attempt.level if attempt else None,
            })

        current = None
        if journey.overall_status != JourneyStatus.COMPLETED.value and journey.current_session_index < len(sessions):
            current = _session_info(sessions[journey.current_session_index])

        return {
            "journey": _journey_info(journey),
            "sessions": entries,
            "currentSession": current,
            "totalSessions": len(sessions),
            "completedSessions": sum(1 for e in entries if e["status"] == SessionProgress.COMPLETED.value),
        }

    def advance_journey(self, journey_id: str) -> Dict:
        """
        Moves the journey on by exactly one session. The current session must
        have been submitted; leaving the last session completes the journey,
        which requires every session's attempt to be final. Advancing a
        completed journey is a no-op.
        """
        journey = self._get_journey_or_raise(journey_id)
        if journey.overall_status == JourneyStatus.COMPLETED.value:
            return {"isComplete": True, "nextSessionId": None, "nextSessionTitle": None}

        sessions = self.db.get_sessions_for_assignment(journey.assignment_id)
        attempts = self._attempts_by_session(journey_id)
        index = journey.current_session_index

        if index < len(sessions) and sessions[index].id not in attempts:
            raise InputValidationError("The current session has not been submitted yet.")

        next_index = index + 1
        if next_index >= len(sessions):
            unfinished = [s.id for s in sessions if not (attempts.get(s.id) and attempts[s.id].is_final)]
            if unfinished:
                raise InputValidationError("Some sessions are still being graded; try again shortly.")

            self.db.update_journey(journey_id, {
                "overall_status": JourneyStatus.COMPLETED.value,
                "completed_at": datetime.now(timezone.utc),
            })
            self.refresh_rollup(journey_id)
            logger.info("[Journey] Completed %s", journey_id)
            return {"isComplete": True, "nextSessionId": None, "nextSessionTitle": None}

        self.db.update_journey(journey_id, {"current_session_index": next_index})
        next_session = sessions[next_index]
        return {"isComplete": False, "nextSessionId": next_session.id, "nextSessionTitle": next_session.title}

    def get_journey_summary(self, journey_id: str) -> Dict:
        journey = self._get_journey_or_raise(journey_id)
        assignment = self.db.get_assignment(journey.assignment_id)
        if not assignment:
            raise NotFoundError(f"Assignment {journey.assignment_id} not found.")
        sessions = self.db.get_sessions_for_assignment(journey.assignment_id)
        attempts = self._attempts_by_session(journey_id)

        session_results = []
        for session in sessions:
            attempt = attempts.get(session.id)
            session_results.append({
                "session": _session_info(session),
                "attemptId": attempt.id if attempt else None,
                "score": attempt.total_score if attempt else 0,
                "maxScore": attempt.max_score if attempt else 0,
                "level": attempt.level if attempt else None,
                "isComplete": bool(attempt and attempt.is_final),
            })

        rollup = self._rollup(sessions, attempts)
        self._store_rollup(journey, rollup)

        final_redirect = None
        if journey.overall_status == JourneyStatus.COMPLETED.value:
            final_redirect = redirect_service.get_level_redirect(self.db, journey.assignment_id, rollup["overall_level"])

        return {
            "journey": _journey_info(journey),
            "assignmentTitle": assignment.title,
            "sessionResults": session_results,
            "summary": {
                "totalScore": rollup["total_score"],
                "maxScore": rollup["max_score"],
                "percentage": calculate_percentage(rollup["total_score"], rollup["max_score"]),
                "overallLevel": rollup["overall_level"],
                "completedSessions": rollup["completed_sessions"],
                "totalSessions": len(sessions),
            },
            "finalRedirect": final_redirect,
        }

    def refresh_rollup(self, journey_id: str) -> Optional[Dict]:
        """Recomputes the journey's cached totals from its attempts. Returns None for unknown journeys."""
        journey = self.db.get_journey(journey_id)
        if not journey:
            logger.warning("[Journey] Rollup requested for unknown journey %s", journey_id)
            return None
        sessions = self.db.get_sessions_for_assignment(journey.assignment_id)
        rollup = self._rollup(sessions, self._attempts_by_session(journey_id))
        self._store_rollup(journey, rollup)
        return rollup


# --- Dependency Injection Provider ---
def get_journey_service(db: DatabaseService = Depends(get_db_service)) -> JourneyService:
    return JourneyService(db=db)
