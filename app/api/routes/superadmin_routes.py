"""
Super Admin Routes

POST /superadmin/applications/assign - Rebalance reviews across reviewers
PUT /superadmin/applications/{id}/status - Final decision
GET/POST /superadmin/settings/reviews-per-app - Review quota
GET/PUT /superadmin/settings/saquestions - Short-answer questions
GET/PUT /superadmin/settings/review-assignment - Own assignment opt-in
PUT /superadmin/settings/scan-types - Replace the scan type list
GET /superadmin/reviewers - Reviewers with load and opt-in flag
PUT /superadmin/reviewers/{id} - Toggle a reviewer's opt-in
PUT /superadmin/users/{id}/role - Change a user's role
"""

from fastapi import APIRouter, Depends

from app.api.errors import CLIENT_ERRORS, http_error
from app.core.auth import get_current_super_admin
from app.core.config import get_settings
from app.db.postgres import get_db_session, set_statement_timeout
from app.schemas.schemas import (
    ApplicationResponse, BatchAssignmentResult, StatusUpdate,
    ReviewsPerAppPayload, ReviewsPerAppResponse, QuestionsPayload, QuestionsResponse,
    ReviewAssignmentToggle, ReviewerListResponse, RoleUpdate, UserResponse,
    ScanTypesPayload, ScanTypesResponse
)
from app.services.application_service import ApplicationService
from app.services.review_assignment import ReviewAssignmentService
from app.services.settings_service import SettingsStore, validate_reviews_per_application
from app.services.user_service import UserService

router = APIRouter(prefix="/superadmin", tags=["Super Admin"])

settings = get_settings()


# ============================================================
# APPLICATIONS
# ============================================================

@router.post("/applications/assign", response_model=BatchAssignmentResult)
async def rebalance_reviews(super_admin: dict = Depends(get_current_super_admin)):
    """
    Evict pending reviews held by disabled reviewers, then top every submitted
    application up to the review quota. All or nothing.
    """
    with get_db_session() as db:
        set_statement_timeout(db, settings.rebalance_timeout_ms)
        quota = SettingsStore(db).get_reviews_per_application()
        return ReviewAssignmentService(db).batch_assign(quota)


@router.put("/applications/{application_id}/status", response_model=ApplicationResponse)
async def set_application_status(
    application_id: str, data: StatusUpdate, super_admin: dict = Depends(get_current_super_admin)
):
    try:
        with get_db_session() as db:
            return ApplicationService(db).set_status(application_id, data.status)
    except CLIENT_ERRORS as e:
        raise http_error(e)


# ============================================================
# SETTINGS
# ============================================================

@router.get("/settings/reviews-per-app", response_model=ReviewsPerAppResponse)
async def get_reviews_per_app(super_admin: dict = Depends(get_current_super_admin)):
    with get_db_session() as db:
        return ReviewsPerAppResponse(reviews_per_application=SettingsStore(db).get_reviews_per_application())


@router.post("/settings/reviews-per-app", response_model=ReviewsPerAppResponse)
async def set_reviews_per_app(data: ReviewsPerAppPayload, super_admin: dict = Depends(get_current_super_admin)):
    """Accepts 1-10. Applies to the next rebalance and pull-next."""
    try:
        value = validate_reviews_per_application(data.reviews_per_application)
        with get_db_session() as db:
            SettingsStore(db).set_reviews_per_application(value)
        return ReviewsPerAppResponse(reviews_per_application=value)
    except CLIENT_ERRORS as e:
        raise http_error(e)


@router.get("/settings/saquestions", response_model=QuestionsResponse)
async def get_questions(super_admin: dict = Depends(get_current_super_admin)):
    with get_db_session() as db:
        return QuestionsResponse(questions=SettingsStore(db).get_short_answer_questions())


@router.put("/settings/saquestions", response_model=QuestionsResponse)
async def update_questions(data: QuestionsPayload, super_admin: dict = Depends(get_current_super_admin)):
    """Replaces the whole question list."""
    try:
        with get_db_session() as db:
            store = SettingsStore(db)
            store.update_short_answer_questions(data.questions)
            return QuestionsResponse(questions=store.get_short_answer_questions())
    except CLIENT_ERRORS as e:
        raise http_error(e)


@router.put("/settings/scan-types", response_model=ScanTypesResponse)
async def update_scan_types(data: ScanTypesPayload, super_admin: dict = Depends(get_current_super_admin)):
    """Replaces the whole scan type list; at least one must be a check_in type."""
    try:
        with get_db_session() as db:
            store = SettingsStore(db)
            store.update_scan_types(data.scan_types)
            return ScanTypesResponse(scan_types=store.get_scan_types())
    except CLIENT_ERRORS as e:
        raise http_error(e)


@router.get("/settings/review-assignment", response_model=ReviewAssignmentToggle)
async def get_own_review_assignment(super_admin: dict = Depends(get_current_super_admin)):
    with get_db_session() as db:
        enabled = ReviewAssignmentService(db).is_enabled(super_admin["user_id"], super_admin["role"])
        return ReviewAssignmentToggle(enabled=enabled)


@router.put("/settings/review-assignment", response_model=ReviewAssignmentToggle)
async def set_own_review_assignment(
    data: ReviewAssignmentToggle, super_admin: dict = Depends(get_current_super_admin)
):
    """Opt in or out of receiving reviews from the next rebalance."""
    try:
        with get_db_session() as db:
            set_statement_timeout(db, settings.query_timeout_ms)
            ReviewAssignmentService(db).set_enabled(super_admin["user_id"], data.enabled)
        return data
    except CLIENT_ERRORS as e:
        raise http_error(e)


# ============================================================
# WORKFORCE
# ============================================================

@router.get("/reviewers", response_model=ReviewerListResponse)
async def list_reviewers(super_admin: dict = Depends(get_current_super_admin)):
    with get_db_session() as db:
        set_statement_timeout(db, settings.query_timeout_ms)
        return ReviewerListResponse(reviewers=ReviewAssignmentService(db).list_reviewers())


@router.put("/reviewers/{reviewer_id}", response_model=ReviewAssignmentToggle)
async def set_reviewer_assignment(
    reviewer_id: str, data: ReviewAssignmentToggle, super_admin: dict = Depends(get_current_super_admin)
):
    """Disabled reviewers lose their pending reviews at the next rebalance."""
    try:
        with get_db_session() as db:
            set_statement_timeout(db, settings.query_timeout_ms)
            ReviewAssignmentService(db).set_enabled(reviewer_id, data.enabled)
        return data
    except CLIENT_ERRORS as e:
        raise http_error(e)


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def set_user_role(user_id: str, data: RoleUpdate, super_admin: dict = Depends(get_current_super_admin)):
    try:
        with get_db_session() as db:
            set_statement_timeout(db, settings.query_timeout_ms)
            return UserService(db).set_role(user_id, data.role)
    except CLIENT_ERRORS as e:
        raise http_error(e)
