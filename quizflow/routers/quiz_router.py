# /quizflow/routers/quiz_router.py

"""
Student-facing submission endpoint. Submissions are unauthenticated (students
reach quizzes through share links); the immediate result is returned at once
and AI grading continues in the background.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from ..core.exceptions import InputValidationError, NotFoundError, PersistenceError
from ..models import attempt_model
from ..services.attempt_service import AttemptService, get_attempt_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/submit",
    response_model=attempt_model.SubmitAttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit answers for a quiz or one session of a journey"
)
def submit_quiz(
    request: attempt_model.SubmitAttemptRequest,
    background_tasks: BackgroundTasks,
    attempt_svc: AttemptService = Depends(get_attempt_service)
):
    """
    Grades the deterministic answers immediately. When open answers or
    image-map text flags need the AI judge, grading is scheduled to run after
    the response is sent and `isFinal` is false until it completes.
    """
    try:
        response, background_work = attempt_svc.submit_attempt(request)
    except InputValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        logger.error("Submission for assignment %s failed: %s", request.assignmentId, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save the submission.")

    if background_work:
        background_tasks.add_task(background_work)
    return response
