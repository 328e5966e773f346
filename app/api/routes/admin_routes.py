"""
Admin Routes (reviewers; super admins pass the same checks)

GET /admin/applications - Cursor-paginated application list
GET /admin/applications/stats - Counts per status
GET /admin/applications/{id} - Full application
GET /admin/applications/{id}/reviews - Reviews of one application
GET /admin/applications/{id}/notes - Reviewer notes without votes
GET /admin/reviews/pending - My pending reviews
GET /admin/reviews/completed - My completed reviews
GET /admin/reviews/next - Claim the next application to review
PUT /admin/reviews/{id} - Vote on one of my reviews
GET /admin/scans/types - Scan types staff can record
POST /admin/scans - Record a badge scan
GET /admin/scans/user/{id} - One attendee's scans, newest first
GET /admin/scans/stats - Scan counts per type
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.api.errors import CLIENT_ERRORS, http_error
from app.core.auth import get_current_admin
from app.core.config import get_settings
from app.db.postgres import get_db_session, set_statement_timeout
from app.schemas.schemas import (
    ApplicationListResponse, ApplicationResponse, ApplicationStats, ApplicationStatus,
    PaginationDirection, ApplicationReviewListResponse, NotesListResponse,
    ReviewListResponse, ReviewResponse, VoteSubmit,
    CreateScanPayload, Scan, ScansResponse, ScanStatsResponse, ScanTypesResponse
)
from app.services.application_service import ApplicationService
from app.services.review_assignment import ReviewAssignmentService
from app.services.review_service import ReviewService
from app.services.scan_service import ScanService
from app.services.settings_service import SettingsStore
from app.utils.pagination import decode_cursor, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/admin", tags=["Admin"])

settings = get_settings()


# ============================================================
# APPLICATIONS
# ============================================================

@router.get("/applications", response_model=ApplicationListResponse)
async def list_applications(
    cursor: Optional[str] = None,
    status: Optional[ApplicationStatus] = None,
    direction: PaginationDirection = PaginationDirection.forward,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    admin: dict = Depends(get_current_admin)
):
    """Newest first. Pass next_cursor / prev_cursor back with direction to page."""
    try:
        position = decode_cursor(cursor) if cursor else None
        with get_db_session() as db:
            set_statement_timeout(db, settings.query_timeout_ms)
            return ApplicationService(db).list(status, position, direction, limit)
    except CLIENT_ERRORS as e:
        raise http_error(e)


@router.get("/applications/stats", response_model=ApplicationStats)
async def get_application_stats(admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        set_statement_timeout(db, settings.query_timeout_ms)
        return ApplicationService(db).get_stats()


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
async def get_application(application_id: str, admin: dict = Depends(get_current_admin)):
    try:
        with get_db_session() as db:
            return ApplicationService(db).get_by_id(application_id)
    except CLIENT_ERRORS as e:
        raise http_error(e)


@router.get("/applications/{application_id}/reviews", response_model=ApplicationReviewListResponse)
async def get_application_reviews(application_id: str, admin: dict = Depends(get_current_admin)):
    try:
        with get_db_session() as db:
            ApplicationService(db).get_by_id(application_id)
            return ApplicationReviewListResponse(reviews=ReviewService(db).get_by_application(application_id))
    except CLIENT_ERRORS as e:
        raise http_error(e)


@router.get("/applications/{application_id}/notes", response_model=NotesListResponse)
async def get_application_notes(application_id: str, admin: dict = Depends(get_current_admin)):
    try:
        with get_db_session() as db:
            ApplicationService(db).get_by_id(application_id)
            return NotesListResponse(notes=ReviewService(db).get_notes_by_application(application_id))
    except CLIENT_ERRORS as e:
        raise http_error(e)


# ============================================================
# REVIEWS
# ============================================================

@router.get("/reviews/pending", response_model=ReviewListResponse)
async def get_pending_reviews(admin: dict = Depends(get_current_admin)):
    """Oldest assignment first."""
    with get_db_session() as db:
        set_statement_timeout(db, settings.query_timeout_ms)
        return ReviewListResponse(reviews=ReviewService(db).get_pending_by_admin(admin["user_id"]))


@router.get("/reviews/completed", response_model=ReviewListResponse)
async def get_completed_reviews(admin: dict = Depends(get_current_admin)):
    """Most recently reviewed first."""
    with get_db_session() as db:
        set_statement_timeout(db, settings.query_timeout_ms)
        return ReviewListResponse(reviews=ReviewService(db).get_completed_by_admin(admin["user_id"]))


@router.get("/reviews/next", response_model=ReviewResponse)
async def get_next_review(admin: dict = Depends(get_current_admin)):
    """
    Claim the neediest submitted application you have not reviewed yet.

    Returns 404 when nothing needs review; that is the normal empty state.
    Calling again before voting returns a new application, never a duplicate.
    """
    try:
        with get_db_session() as db:
            set_statement_timeout(db, settings.pull_next_timeout_ms)
            quota = SettingsStore(db).get_reviews_per_application()
            review = ReviewAssignmentService(db).assign_next(admin["user_id"], quota)
            return ReviewResponse(review=review)
    except CLIENT_ERRORS as e:
        raise http_error(e)


@router.put("/reviews/{review_id}", response_model=ReviewResponse)
async def submit_vote(review_id: str, data: VoteSubmit, admin: dict = Depends(get_current_admin)):
    try:
        with get_db_session() as db:
            set_statement_timeout(db, settings.query_timeout_ms)
            review = ReviewService(db).submit_vote(review_id, admin["user_id"], data.vote, data.notes)
            return ReviewResponse(review=review)
    except CLIENT_ERRORS as e:
        raise http_error(e)


# ============================================================
# SCANS
# ============================================================

@router.get("/scans/types", response_model=ScanTypesResponse)
async def get_scan_types(admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        return ScanTypesResponse(scan_types=ScanService(db).get_scan_types())


@router.post("/scans", response_model=Scan, status_code=201)
async def create_scan(data: CreateScanPayload, admin: dict = Depends(get_current_admin)):
    """
    Record a badge scan.

    400 for an unknown or inactive type, 403 when a meal or swag type is
    claimed before check-in, 409 when the attendee already has this scan.
    """
    try:
        with get_db_session() as db:
            set_statement_timeout(db, settings.query_timeout_ms)
            return ScanService(db).create(data.user_id, data.scan_type, admin["user_id"])
    except CLIENT_ERRORS as e:
        raise http_error(e)


@router.get("/scans/user/{user_id}", response_model=ScansResponse)
async def get_user_scans(user_id: str, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        set_statement_timeout(db, settings.query_timeout_ms)
        return ScansResponse(scans=ScanService(db).get_by_user(user_id))


@router.get("/scans/stats", response_model=ScanStatsResponse)
async def get_scan_stats(admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        set_statement_timeout(db, settings.query_timeout_ms)
        return ScanStatsResponse(stats=ScanService(db).get_stats())
