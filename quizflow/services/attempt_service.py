# /quizflow/services/attempt_service.py

"""
The attempt lifecycle: submission, background AI grading, regrade, delete and
bulk operations.

An attempt moves `in_progress -> submitted -> graded` when everything could be
scored immediately, or `in_progress -> submitted -> grading -> graded` when
some answers need the judge. In the second case the service hands back a
single deferred callable; the caller schedules it (FastAPI `BackgroundTasks`
in the routers) and the attempt stays provisional until it has run.

Every grading pass owns one `grading_generation` of the attempt. A regrade
starts a new generation, and all writes of the older pass are refused by the
repository from then on, so a stale pass can never overwrite a newer one.
"""

import asyncio
import functools
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from fastapi import Depends

from ..core.config import (
    AI_FLAG_INTER_CALL_DELAY_SECONDS,
    AI_GRADING_INTER_CALL_DELAY_SECONDS,
    AI_GRADING_MAX_RETRIES,
    AI_GRADING_RETRY_DELAY_SECONDS,
)
from ..core.exceptions import AuthorizationError, InputValidationError, NotFoundError, PersistenceError
from ..db.database import SessionLocal
from ..models.attempt_model import AttemptStatus, BulkAction, SubmitAttemptRequest
from .attempt_helpers import answer_intake, data_assembly, grading_pipeline, immediate_grading
from .database_service import DatabaseService, get_db_service
from .grading.level_calculator import calculate_level
from .journey_service import JourneyService
from .llm_service import get_judge
from . import redirect_service

logger = logging.getLogger(__name__)

BackgroundWork = Callable[[], Awaitable[None]]


@dataclass
class RegradeResult:
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    background_work: Optional[BackgroundWork] = None


@dataclass
class DeleteResult:
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None


def _now():
    return datetime.now(timezone.utc)


def verify_teacher_ownership(db: DatabaseService, assignment_id: str, user_id: str):
    """Raises unless `user_id` is the teacher who owns the assignment. Returns the assignment."""
    teacher = db.get_teacher_by_user_id(user_id)
    if not teacher:
        raise NotFoundError("Teacher not found.")
    assignment = db.get_assignment(assignment_id)
    if not assignment:
        raise NotFoundError(f"Assignment {assignment_id} not found.")
    if assignment.teacher_id != teacher.id:
        raise AuthorizationError("You do not have permission to modify this assignment.")
    return assignment


class AttemptService:
    def __init__(self, db: DatabaseService, judge=None, session_factory=None,
                 inter_call_delay: float = AI_GRADING_INTER_CALL_DELAY_SECONDS,
                 flag_delay: float = AI_FLAG_INTER_CALL_DELAY_SECONDS,
                 retries: int = AI_GRADING_MAX_RETRIES,
                 retry_delay: float = AI_GRADING_RETRY_DELAY_SECONDS):
        """
        `session_factory` opens the session used by background grading, which
        outlives the request. Without one the background pass reuses `db`.
        The judge is resolved on first use when none is given.
        """
        self.db = db
        self._judge = judge
        self.session_factory = session_factory
        self.inter_call_delay = inter_call_delay
        self.flag_delay = flag_delay
        self.retries = retries
        self.retry_delay = retry_delay

    @property
    def judge(self):
        if self._judge is None:
            self._judge = get_judge()
        return self._judge

    # --- Submission ---

    def submit_attempt(self, request: SubmitAttemptRequest) -> Tuple[Dict, Optional[BackgroundWork]]:
        """
        Validates and persists a submission, grades what can be graded now and
        returns `(response, background_work)`. `background_work` is None when
        the attempt is already final.
        """
        assignment = self.db.get_assignment(request.assignmentId)
        if not assignment:
            raise NotFoundError(f"Assignment {request.assignmentId} not found.")

        if request.sessionId:
            session = self.db.get_session(request.sessionId)
            if not session or session.assignment_id != assignment.id:
                raise InputValidationError(f"Session {request.sessionId} does not belong to this assignment.")

        if request.journeyId:
            journey = self.db.get_journey(request.journeyId)
            if not journey:
                raise NotFoundError(f"Journey {request.journeyId} not found.")
            if journey.assignment_id != assignment.id:
                raise InputValidationError("Journey does not belong to this assignment.")
            if journey.overall_status == "completed":
                raise InputValidationError("This journey is already completed.")

        questions = self.db.get_questions(assignment.id, request.sessionId)
        if not questions:
            raise InputValidationError("There are no questions to answer.")

        raw_answers = answer_intake.collect_submitted_answers(questions, request.answers)
        grading = immediate_grading.grade_immediately(questions, raw_answers)

        attempt = self.db.add_attempt({
            "id": f"att_{uuid.uuid4().hex[:16]}",
            "assignment_id": assignment.id,
            "session_id": request.sessionId,
            "journey_id": request.journeyId,
            "share_link_id": request.shareLinkId,
            "student_name": request.studentName,
            "student_email": request.studentEmail,
            "status": AttemptStatus.IN_PROGRESS.value,
        })
        attempt_id = attempt.id
        generation = attempt.grading_generation

        records = [
            answer_intake.build_answer_record(attempt_id, q.id, raw_answers[q.id], grading.answer_fields.get(q.id))
            for q in questions
        ]
        try:
            self.db.add_answers(records)
        except PersistenceError:
            logger.error("[Submit] Saving answers of attempt %s failed, discarding the attempt", attempt_id)
            self._discard_attempt(attempt_id)
            raise

        self.db.update_attempt(attempt_id, {
            "status": AttemptStatus.SUBMITTED.value,
            "submitted_at": _now(),
            **grading.attempt_totals(),
        })
        background = self._settle_immediate(attempt_id, request.journeyId, grading, generation)

        logger.info("[Submit] Attempt %s: immediate %d/%d, max %d, %d answers pending",
                    attempt_id, grading.mcq_score, grading.mcq_total, grading.max_score,
                    len(grading.pending_question_ids))

        response = {
            "attemptId": attempt_id,
            "status": (AttemptStatus.GRADING if background else AttemptStatus.GRADED).value,
            "isFinal": background is None,
            "provisionalLevel": calculate_level(grading.mcq_score, grading.max_score).value,
            "mcqScore": grading.mcq_score,
            "mcqTotal": grading.mcq_total,
            "maxScore": grading.max_score,
            "gradingTotal": len(grading.pending_question_ids),
        }
        return response, background

    def _discard_attempt(self, attempt_id: str):
        try:
            self.db.delete_answers(attempt_id)
            self.db.delete_attempt(attempt_id)
        except PersistenceError as e:
            logger.error("[Submit] Could not discard attempt %s: %s", attempt_id, e)

    def _settle_immediate(self, attempt_id: str, journey_id: Optional[str],
                          grading: immediate_grading.ImmediateGrading, generation: int) -> Optional[BackgroundWork]:
        """Finalizes the attempt when nothing is pending, otherwise returns the background pass."""
        totals = grading.attempt_totals()
        if not grading.has_pending:
            applied = self.db.update_attempt(attempt_id, {
                **totals,
                "status": AttemptStatus.GRADED.value,
                "is_final": True,
                "level": calculate_level(grading.mcq_score, grading.max_score).value,
            }, generation)
            if applied and journey_id:
                JourneyService(self.db).refresh_rollup(journey_id)
            return None

        self.db.update_attempt(attempt_id, {
            **totals,
            "status": AttemptStatus.GRADING.value,
            "is_final": False,
            "level": None,
        }, generation)
        return functools.partial(self.run_background_grading, attempt_id, generation)

    # --- Background Grading ---

    async def run_background_grading(self, attempt_id: str, generation: int):
        """
        Grades the pending answers of one attempt for the given generation.
        Never raises: failures are logged and attributed to their item.
        """
        db = DatabaseService(self.session_factory()) if self.session_factory else self.db
        try:
            await self._grade_pending_answers(db, attempt_id, generation)
        except Exception as e:
            logger.exception("[Grading] Background grading of attempt %s failed: %s", attempt_id, e)
        finally:
            if db is not self.db:
                db.close()

    def _superseded(self, attempt_id: str, generation: int):
        logger.info("[Grading] Attempt %s generation %d was superseded or removed; stopping", attempt_id, generation)

    async def _grade_pending_answers(self, db: DatabaseService, attempt_id: str, generation: int):
        attempt = db.get_attempt(attempt_id)
        if attempt is None or attempt.grading_generation != generation:
            self._superseded(attempt_id, generation)
            return

        mcq_score = attempt.mcq_score
        max_score = attempt.max_score
        journey_id = attempt.journey_id
        questions = db.get_questions(attempt.assignment_id, attempt.session_id)
        pending = [q for q in questions if immediate_grading.needs_ai_grading(q)]
        answers = {a.question_id: a for a in db.get_answers(attempt_id)}

        logger.info("[Grading] Attempt %s generation %d: grading %d pending answers",
                    attempt_id, generation, len(pending))

        open_score = 0
        for index, question in enumerate(pending):
            if index > 0 and self.inter_call_delay:
                await asyncio.sleep(self.inter_call_delay)

            try:
                fields, earned = await grading_pipeline.grade_pending_answer(
                    self.judge, question, answers.get(question.id), flag_delay=self.flag_delay,
                    retries=self.retries, retry_delay=self.retry_delay,
                )
            except Exception as e:
                logger.exception("[Grading] Unexpected error on question %s of attempt %s", question.id, attempt_id)
                fields, earned = grading_pipeline.failed_item_fields(e), 0

            try:
                if not db.update_answer(attempt_id, question.id, fields, generation):
                    self._superseded(attempt_id, generation)
                    return
            except PersistenceError as e:
                logger.error("[Grading] Could not save question %s of attempt %s: %s", question.id, attempt_id, e)
                continue

            # Only points that reached the answer row count toward the attempt.
            open_score += earned
            try:
                if not db.update_attempt(attempt_id, {"open_score": open_score, "grading_progress": index + 1},
                                         generation):
                    self._superseded(attempt_id, generation)
                    return
            except PersistenceError as e:
                logger.error("[Grading] Could not save progress of attempt %s: %s", attempt_id, e)

        try:
            unfinished = db.fail_unscored_answers(attempt_id, [q.id for q in pending],
                                                  grading_pipeline.unfinished_item_fields(), generation)
            if unfinished:
                logger.warning("[Grading] Attempt %s finalized with %d ungraded answers", attempt_id, unfinished)
        except PersistenceError as e:
            logger.error("[Grading] Could not mark ungraded answers of attempt %s, leaving it unfinalized "
                         "until it is regraded: %s", attempt_id, e)
            return

        total_score = mcq_score + open_score
        level = calculate_level(total_score, max_score).value
        applied = db.update_attempt(attempt_id, {
            "open_score": open_score,
            "total_score": total_score,
            "level": level,
            "status": AttemptStatus.GRADED.value,
            "is_final": True,
            "grading_progress": len(pending),
        }, generation)
        if not applied:
            self._superseded(attempt_id, generation)
            return

        logger.info("[Grading] Attempt %s final: %d/%d (%s)", attempt_id, total_score, max_score, level)
        if journey_id:
            JourneyService(db).refresh_rollup(journey_id)

    # --- Regrade ---

    def regrade_attempt(self, attempt_id: str) -> RegradeResult:
        """
        Resets the attempt and runs the submission pipeline again on its stored
        answers. Safe in any state: an in-flight pass is superseded.

        Once the new generation is claimed the answers may already be reset, so
        a failed rebuild is tried once more before the attempt is given up as
        ungraded.
        """
        attempt = self.db.get_attempt(attempt_id)
        if not attempt:
            return RegradeResult(False, "Attempt not found", "not_found")
        journey_id = attempt.journey_id
        questions = self.db.get_questions(attempt.assignment_id, attempt.session_id)

        try:
            generation = self.db.start_new_grading_generation(attempt_id, {
                "status": AttemptStatus.GRADING.value,
                "is_final": False,
                "level": None,
                "mcq_score": 0, "mcq_total": 0,
                "open_score": 0, "open_total": 0,
                "total_score": 0, "max_score": 0,
                "grading_progress": 0, "grading_total": 0,
            })
        except PersistenceError as e:
            logger.error("[Regrade] Attempt %s could not be reset: %s", attempt_id, e)
            return RegradeResult(False, str(e), "persistence_error")
        if generation is None:
            return RegradeResult(False, "Attempt not found", "not_found")

        try:
            background = self._rebuild_grading(attempt_id, journey_id, questions, generation)
        except PersistenceError as e:
            logger.warning("[Regrade] Attempt %s generation %d failed, retrying once: %s", attempt_id, generation, e)
            try:
                background = self._rebuild_grading(attempt_id, journey_id, questions, generation)
            except PersistenceError as e:
                logger.error("[Regrade] Attempt %s generation %d failed again: %s", attempt_id, generation, e)
                return RegradeResult(
                    False,
                    f"Regrade failed after the attempt was reset; it is left ungraded and must be "
                    f"regraded again. Cause: {e}",
                    "persistence_error",
                )

        logger.info("[Regrade] Attempt %s reset to generation %d (%s)", attempt_id, generation,
                    "background grading scheduled" if background else "final")
        return RegradeResult(True, background_work=background)

    def _rebuild_grading(self, attempt_id: str, journey_id: Optional[str], questions: List,
                         generation: int) -> Optional[BackgroundWork]:
        self.db.reset_answers(attempt_id)
        raw_answers = {row.question_id: answer_intake.raw_answer_from_row(row)
                       for row in self.db.get_answers(attempt_id)}
        missing = [q for q in questions if q.id not in raw_answers]
        for question in missing:
            raw_answers[question.id] = answer_intake.empty_raw_answer()

        grading = immediate_grading.grade_immediately(questions, raw_answers)

        if missing:
            self.db.add_answers([
                answer_intake.build_answer_record(attempt_id, q.id, raw_answers[q.id],
                                                  grading.answer_fields.get(q.id))
                for q in missing
            ])
        missing_ids = {q.id for q in missing}
        for question in questions:
            if question.id not in missing_ids:
                self.db.update_answer(attempt_id, question.id, grading.answer_fields[question.id], generation)

        return self._settle_immediate(attempt_id, journey_id, grading, generation)

    # --- Delete ---

    def delete_attempt(self, attempt_id: str) -> DeleteResult:
        """Deletes the answers, then the attempt. The error code says which step failed."""
        attempt = self.db.get_attempt(attempt_id)
        if not attempt:
            return DeleteResult(False, "Attempt not found", "not_found")
        journey_id = attempt.journey_id

        try:
            self.db.delete_answers(attempt_id)
        except PersistenceError as e:
            logger.error("[Delete] Answers of attempt %s could not be deleted: %s", attempt_id, e)
            return DeleteResult(False, "Failed to delete answers", "answers_delete_failed")

        try:
            deleted = self.db.delete_attempt(attempt_id)
        except PersistenceError as e:
            logger.error("[Delete] Attempt %s could not be deleted after its answers were: %s", attempt_id, e)
            return DeleteResult(False, "Failed to delete attempt", "attempt_delete_failed")
        if not deleted:
            return DeleteResult(False, "Attempt not found", "not_found")

        if journey_id:
            JourneyService(self.db).refresh_rollup(journey_id)
        logger.info("[Delete] Attempt %s deleted", attempt_id)
        return DeleteResult(True)

    # --- Bulk ---

    def bulk_action(self, action: BulkAction, attempt_ids: List[str],
                    assignment_id: str) -> Tuple[Dict, Optional[BackgroundWork]]:
        """
        Applies one action to many attempts of an assignment. Each attempt is
        processed on its own; ids outside the assignment are reported in
        `invalidIds` and as failed ledger entries.
        """
        action = BulkAction(action)
        ids = list(dict.fromkeys(attempt_ids))
        valid_ids = set(self.db.get_attempt_ids_in_assignment(assignment_id, ids))

        results = []
        invalid_ids = []
        pending_work = []
        for attempt_id in ids:
            if attempt_id not in valid_ids:
                invalid_ids.append(attempt_id)
                results.append({"id": attempt_id, "success": False,
                                "error": "Attempt not found in this assignment", "errorCode": "not_found"})
                continue

            if action is BulkAction.DELETE:
                outcome = self.delete_attempt(attempt_id)
            else:
                outcome = self.regrade_attempt(attempt_id)
                if outcome.background_work:
                    pending_work.append((attempt_id, outcome.background_work))
            results.append({"id": attempt_id, "success": outcome.success,
                            "error": outcome.error, "errorCode": outcome.error_code})

        succeeded = sum(1 for r in results if r["success"])
        logger.info("[Bulk] %s on %d attempts: %d succeeded, %d invalid",
                    action.value, len(ids), succeeded, len(invalid_ids))

        response = {
            "success": succeeded == len(ids),
            "processed": len(ids),
            "succeeded": succeeded,
            "failed": len(ids) - succeeded,
            "invalidIds": invalid_ids,
            "results": results,
        }

        background = None
        if pending_work:
            async def run_all():
                for work_attempt_id, work in pending_work:
                    try:
                        await work()
                    except Exception as e:
                        logger.exception("[Bulk] Background grading of attempt %s failed: %s", work_attempt_id, e)
            background = run_all
        return response, background

    # --- Results ---

    def get_attempt_result(self, attempt_id: str) -> Dict:
        """The attempt with its answers, progress, and the level redirect once final."""
        attempt = self.db.get_attempt(attempt_id)
        if not attempt:
            raise NotFoundError(f"Attempt {attempt_id} not found.")
        assignment = self.db.get_assignment(attempt.assignment_id)
        show_ai_feedback = assignment.show_ai_feedback if assignment else True

        questions = self.db.get_questions(attempt.assignment_id, attempt.session_id)
        answer_results = data_assembly.assemble_answer_results(
            questions, self.db.get_answers(attempt_id), show_ai_feedback=show_ai_feedback)

        redirect = None
        if attempt.is_final:
            redirect = redirect_service.get_level_redirect(self.db, attempt.assignment_id, attempt.level,
                                                           attempt.session_id)
        return data_assembly.assemble_attempt_result(attempt, answer_results, redirect)


# --- Dependency Injection Provider ---
def get_attempt_service(db: DatabaseService = Depends(get_db_service)) -> AttemptService:
    return AttemptService(db=db, session_factory=SessionLocal)
