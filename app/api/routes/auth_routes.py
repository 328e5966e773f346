"""
Authentication Routes

GET /auth/me - Get current user info

Sign-in and sign-up are handled by the identity provider.
"""

from fastapi import APIRouter, Depends

from app.api.errors import CLIENT_ERRORS, http_error
from app.db.postgres import get_db_session
from app.core.auth import get_current_user
from app.schemas.schemas import UserResponse
from app.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    try:
        with get_db_session() as db:
            return UserService(db).get_by_id(user["user_id"])
    except CLIENT_ERRORS as e:
        raise http_error(e)
