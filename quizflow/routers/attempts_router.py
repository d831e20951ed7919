# /quizflow/routers/attempts_router.py

"""
Endpoints for a single attempt and for bulk operations on attempts.

Reading an attempt is open to the student who polls for their result.
Regrade, delete and bulk actions are teacher-only: the router resolves the
caller's identity and checks that they own the attempt's assignment before
any state is touched.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from ..core.deps import get_current_user_id
from ..core.exceptions import AuthorizationError, NotFoundError
from ..models import attempt_model
from ..services.attempt_service import AttemptService, get_attempt_service, verify_teacher_ownership

logger = logging.getLogger(__name__)

router = APIRouter()

_FAILURE_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
}


def _ensure_owner(attempt_svc: AttemptService, assignment_id: str, user_id: str):
    try:
        verify_teacher_ownership(attempt_svc.db, assignment_id, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


def _ensure_attempt_owner(attempt_svc: AttemptService, attempt_id: str, user_id: str):
    attempt = attempt_svc.db.get_attempt(attempt_id)
    if not attempt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attempt not found.")
    _ensure_owner(attempt_svc, attempt.assignment_id, user_id)


def _raise_for_failure(error: str, error_code: str):
    raise HTTPException(
        status_code=_FAILURE_STATUS.get(error_code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"error": error, "errorCode": error_code},
    )


# --- Bulk Endpoint (declared before the parametrised routes) ---

@router.post(
    "/bulk",
    response_model=attempt_model.BulkActionResponse,
    summary="Delete or regrade many attempts of one assignment"
)
def bulk_attempt_action(
    request: attempt_model.BulkActionRequest,
    background_tasks: BackgroundTasks,
    attempt_svc: AttemptService = Depends(get_attempt_service),
    user_id: str = Depends(get_current_user_id)
):
    _ensure_owner(attempt_svc, request.assignmentId, user_id)

    response, background_work = attempt_svc.bulk_action(request.action, request.attemptIds, request.assignmentId)
    if background_work:
        background_tasks.add_task(background_work)
    return response


# --- Single Attempt Endpoints ---

@router.get(
    "/{attempt_id}",
    response_model=attempt_model.AttemptResultResponse,
    summary="Get an attempt's result and grading progress"
)
def get_attempt(
    attempt_id: str,
    attempt_svc: AttemptService = Depends(get_attempt_service)
):
    """Polled by the results page until `isFinal` is true."""
    try:
        return attempt_svc.get_attempt_result(attempt_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/{attempt_id}/regrade",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Reset an attempt and grade it again"
)
def regrade_attempt(
    attempt_id: str,
    background_tasks: BackgroundTasks,
    attempt_svc: AttemptService = Depends(get_attempt_service),
    user_id: str = Depends(get_current_user_id)
):
    _ensure_attempt_owner(attempt_svc, attempt_id, user_id)

    result = attempt_svc.regrade_attempt(attempt_id)
    if not result.success:
        _raise_for_failure(result.error, result.error_code)

    if result.background_work:
        background_tasks.add_task(result.background_work)
    return {
        "success": True,
        "attemptId": attempt_id,
        "isFinal": result.background_work is None,
        "message": "Regrading started" if result.background_work else "Attempt regraded",
    }


@router.delete(
    "/{attempt_id}",
    summary="Delete an attempt and its answers"
)
def delete_attempt(
    attempt_id: str,
    attempt_svc: AttemptService = Depends(get_attempt_service),
    user_id: str = Depends(get_current_user_id)
):
    _ensure_attempt_owner(attempt_svc, attempt_id, user_id)

    result = attempt_svc.delete_attempt(attempt_id)
    if not result.success:
        _raise_for_failure(result.error, result.error_code)
    return {"success": True}
