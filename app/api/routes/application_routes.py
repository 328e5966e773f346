"""
Application Routes (applicant side)

GET /applications/me - Get own application, creating a draft on first visit
PATCH /applications/me - Update draft fields
POST /applications/me/submit - Submit for review
"""

from fastapi import APIRouter, Depends

from app.api.errors import CLIENT_ERRORS, http_error
from app.db.postgres import get_db_session
from app.core.auth import get_current_user
from app.schemas.schemas import ApplicationResponse, ApplicationUpdate
from app.services.application_service import ApplicationService

router = APIRouter(prefix="/applications", tags=["Applications"])


@router.get("/me", response_model=ApplicationResponse)
async def get_my_application(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return ApplicationService(db).get_or_create_for_user(user["user_id"])


@router.patch("/me", response_model=ApplicationResponse)
async def update_my_application(data: ApplicationUpdate, user: dict = Depends(get_current_user)):
    """Only fields present in the body are written. Submitted applications are read-only."""
    try:
        with get_db_session() as db:
            service = ApplicationService(db)
            service.get_or_create_for_user(user["user_id"])
            return service.update(user["user_id"], data)
    except CLIENT_ERRORS as e:
        raise http_error(e)


@router.post("/me/submit", response_model=ApplicationResponse)
async def submit_my_application(user: dict = Depends(get_current_user)):
    """
    Submit the draft for review.

    Requires name, university, every acknowledgement and an answer to every
    required short-answer question.
    """
    try:
        with get_db_session() as db:
            return ApplicationService(db).submit(user["user_id"])
    except CLIENT_ERRORS as e:
        raise http_error(e)
