# /quizflow/routers/embed_router.py

from fastapi import APIRouter, Depends, HTTPException, status

from ..core.exceptions import InputValidationError, NotFoundError
from ..models import attempt_model
from ..services import redirect_service
from ..services.database_service import DatabaseService, get_db_service

router = APIRouter()


@router.get(
    "/{attempt_id}",
    response_model=attempt_model.EmbedContentResponse,
    summary="Get the embed snippet configured for a graded attempt's level"
)
def get_embed_content(
    attempt_id: str,
    db: DatabaseService = Depends(get_db_service)
):
    try:
        return redirect_service.get_embed_content(db, attempt_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InputValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
