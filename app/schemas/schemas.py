"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, Field, AfterValidator, field_validator
from typing import Annotated, Optional, List, Dict
from datetime import datetime
from enum import Enum

from app.db.postgres import as_utc


# Timestamps come back naive from SQLite and aware from PostgreSQL
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    hacker = "hacker"
    admin = "admin"
    super_admin = "super_admin"


REVIEWER_ROLES = (UserRole.admin.value, UserRole.super_admin.value)


class ApplicationStatus(str, Enum):
    draft = "draft"
    submitted = "submitted"
    accepted = "accepted"
    rejected = "rejected"
    waitlisted = "waitlisted"


class DecisionStatus(str, Enum):
    accepted = "accepted"
    rejected = "rejected"
    waitlisted = "waitlisted"


class ReviewVote(str, Enum):
    accept = "accept"
    reject = "reject"
    waitlist = "waitlist"


class PaginationDirection(str, Enum):
    forward = "forward"
    backward = "backward"


# ============================================================
# USER SCHEMAS
# ============================================================

class UserResponse(BaseModel):
    id: str
    email: str
    role: UserRole
    created_at: UTCDateTime

class RoleUpdate(BaseModel):
    role: UserRole


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationUpdate(BaseModel):
    """Partial update - only fields present in the body are written."""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_e164: Optional[str] = Field(None, pattern=r"^\+[1-9]\d{1,14}$")
    age: Optional[int] = Field(None, ge=1, le=150)
    country_of_residence: Optional[str] = Field(None, min_length=1)
    university: Optional[str] = Field(None, min_length=1)
    major: Optional[str] = Field(None, min_length=1)
    level_of_study: Optional[str] = Field(None, min_length=1)
    hackathons_attended_count: Optional[int] = Field(None, ge=0)
    software_experience_level: Optional[str] = Field(None, min_length=1)
    heard_about: Optional[str] = Field(None, min_length=1)
    shirt_size: Optional[str] = Field(None, min_length=1)
    dietary_restrictions: Optional[List[str]] = None
    accommodations: Optional[str] = None
    github: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None
    short_answer_responses: Optional[Dict[str, str]] = None
    ack_application: Optional[bool] = None
    ack_code_of_conduct: Optional[bool] = None
    ack_privacy: Optional[bool] = None

    @field_validator("github", "linkedin", "website")
    @classmethod
    def check_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return v

class ApplicationResponse(BaseModel):
    id: str
    user_id: str
    status: ApplicationStatus
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_e164: Optional[str] = None
    age: Optional[int] = None
    country_of_residence: Optional[str] = None
    university: Optional[str] = None
    major: Optional[str] = None
    level_of_study: Optional[str] = None
    hackathons_attended_count: Optional[int] = None
    software_experience_level: Optional[str] = None
    heard_about: Optional[str] = None
    shirt_size: Optional[str] = None
    dietary_restrictions: List[str] = []
    accommodations: Optional[str] = None
    github: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None
    short_answer_responses: Dict[str, str] = {}
    ack_application: bool = False
    ack_code_of_conduct: bool = False
    ack_privacy: bool = False
    reviews_assigned: int = 0
    submitted_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

class ApplicationListItem(BaseModel):
    id: str
    user_id: str
    email: str
    status: ApplicationStatus
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    university: Optional[str] = None
    submitted_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime

class ApplicationListResponse(BaseModel):
    applications: List[ApplicationListItem]
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    has_more: bool

class ApplicationStats(BaseModel):
    total_applications: int
    draft: int
    submitted: int
    accepted: int
    rejected: int
    waitlisted: int
    acceptance_rate: float

class StatusUpdate(BaseModel):
    status: DecisionStatus


# ============================================================
# REVIEW SCHEMAS
# ============================================================

class ApplicationReview(BaseModel):
    id: str
    application_id: str
    admin_id: str
    vote: Optional[ReviewVote] = None
    notes: Optional[str] = None
    assigned_at: UTCDateTime
    reviewed_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

class ApplicationReviewWithDetails(ApplicationReview):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    age: Optional[int] = None
    university: Optional[str] = None
    major: Optional[str] = None
    country_of_residence: Optional[str] = None
    hackathons_attended_count: Optional[int] = None

class ReviewNote(BaseModel):
    admin_id: str
    admin_email: str
    notes: str
    created_at: UTCDateTime

class VoteSubmit(BaseModel):
    vote: ReviewVote
    notes: Optional[str] = Field(None, max_length=1000)

class ReviewResponse(BaseModel):
    review: ApplicationReview

class ReviewListResponse(BaseModel):
    reviews: List[ApplicationReviewWithDetails]

class ApplicationReviewListResponse(BaseModel):
    reviews: List[ApplicationReview]

class NotesListResponse(BaseModel):
    notes: List[ReviewNote]

class BatchAssignmentResult(BaseModel):
    reviews_created: int = 0


# ============================================================
# SETTINGS SCHEMAS
# ============================================================

class ReviewsPerAppPayload(BaseModel):
    # Range is enforced by the quota policy, which owns the [1, 10] bounds
    reviews_per_application: int

class ReviewsPerAppResponse(BaseModel):
    reviews_per_application: int

class ShortAnswerQuestion(BaseModel):
    id: str = Field(..., min_length=1, max_length=50)
    question: str = Field(..., min_length=1, max_length=500)
    required: bool = False
    display_order: int = Field(0, ge=0)

class QuestionsPayload(BaseModel):
    questions: List[ShortAnswerQuestion]

class QuestionsResponse(BaseModel):
    questions: List[ShortAnswerQuestion]

class ReviewAssignmentToggle(BaseModel):
    enabled: bool

class ReviewerResponse(BaseModel):
    id: str
    email: str
    role: UserRole
    enabled: bool
    pending_reviews: int
    created_at: UTCDateTime

class ReviewerListResponse(BaseModel):
    reviewers: List[ReviewerResponse]



# ============================================================
# SCAN SCHEMAS
# ============================================================

class ScanTypeCategory(str, Enum):
    check_in = "check_in"
    meal = "meal"
    swag = "swag"

class ScanType(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    display_name: str = Field(..., min_length=1, max_length=100)
    category: ScanTypeCategory
    is_active: bool = True

class ScanTypesPayload(BaseModel):
    scan_types: List[ScanType]

class ScanTypesResponse(BaseModel):
    scan_types: List[ScanType]

class CreateScanPayload(BaseModel):
    user_id: str = Field(..., min_length=1)
    scan_type: str = Field(..., min_length=1)

class Scan(BaseModel):
    id: str
    user_id: str
    scan_type: str
    scanned_by: str
    scanned_at: UTCDateTime
    created_at: UTCDateTime

class ScansResponse(BaseModel):
    scans: List[Scan]

class ScanStat(BaseModel):
    scan_type: str
    count: int

class ScanStatsResponse(BaseModel):
    stats: List[ScanStat]
