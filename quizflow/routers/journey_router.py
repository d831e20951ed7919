# /quizflow/routers/journey_router.py

from fastapi import APIRouter, Depends, HTTPException, status

from ..core.exceptions import InputValidationError, NotFoundError
from ..models import journey_model
from ..services.journey_service import JourneyService, get_journey_service

router = APIRouter()


@router.post(
    "",
    response_model=journey_model.StartJourneyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a multi-session journey"
)
def start_journey(
    request: journey_model.StartJourneyRequest,
    journey_svc: JourneyService = Depends(get_journey_service)
):
    try:
        return journey_svc.start_journey(request)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InputValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get(
    "/{journey_id}",
    response_model=journey_model.JourneyStatusResponse,
    summary="Get a journey and the status of each session"
)
def get_journey(
    journey_id: str,
    journey_svc: JourneyService = Depends(get_journey_service)
):
    try:
        return journey_svc.get_journey_status(journey_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put(
    "/{journey_id}",
    response_model=journey_model.AdvanceJourneyResponse,
    summary="Advance a journey to its next session"
)
def update_journey(
    journey_id: str,
    request: journey_model.JourneyActionRequest,
    journey_svc: JourneyService = Depends(get_journey_service)
):
    """The only supported action is `advance`; anything else is rejected by validation."""
    try:
        return journey_svc.advance_journey(journey_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InputValidationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get(
    "/{journey_id}/summary",
    response_model=journey_model.JourneySummaryResponse,
    summary="Get the per-session results and overall level of a journey"
)
def get_journey_summary(
    journey_id: str,
    journey_svc: JourneyService = Depends(get_journey_service)
):
    try:
        return journey_svc.get_journey_summary(journey_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
