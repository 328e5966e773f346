"""
Review Service - reads over the assignment ledger and vote submission.

Ledger rows are only created by ReviewAssignmentService (rebalance and
pull-next); this module never inserts.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.postgres import sql, utcnow
from app.schemas.schemas import ApplicationReview, ApplicationReviewWithDetails, ReviewNote, ReviewVote

logger = logging.getLogger(__name__)

REVIEW_COLUMNS = """
    r.id, r.application_id, r.admin_id, r.vote, r.notes,
    r.assigned_at, r.reviewed_at, r.created_at, r.updated_at
"""

DETAIL_QUERY = f"""
    SELECT {REVIEW_COLUMNS},
           a.first_name, a.last_name, u.email, a.age, a.university, a.major,
           a.country_of_residence, a.hackathons_attended_count
    FROM application_reviews r
    JOIN applications a ON r.application_id = a.id
    JOIN users u ON a.user_id = u.id
    WHERE r.admin_id = :admin_id
"""


class ReviewService:

    def __init__(self, db: Session):
        self.db = db

    def get_pending_by_admin(self, admin_id: str) -> List[ApplicationReviewWithDetails]:
        rows = self.db.execute(
            sql(DETAIL_QUERY + " AND r.vote IS NULL ORDER BY r.assigned_at ASC, r.id ASC"),
            {"admin_id": admin_id}
        ).mappings().all()
        return [ApplicationReviewWithDetails(**r) for r in rows]

    def get_completed_by_admin(self, admin_id: str) -> List[ApplicationReviewWithDetails]:
        rows = self.db.execute(
            sql(DETAIL_QUERY + " AND r.vote IS NOT NULL ORDER BY r.reviewed_at DESC, r.id DESC"),
            {"admin_id": admin_id}
        ).mappings().all()
        return [ApplicationReviewWithDetails(**r) for r in rows]

    def get_by_id(self, review_id: str) -> ApplicationReview:
        row = self.db.execute(
            sql(f"SELECT {REVIEW_COLUMNS} FROM application_reviews r WHERE r.id = :id"),
            {"id": review_id}
        ).mappings().first()
        if not row:
            raise NotFoundError("Review not found")
        return ApplicationReview(**row)

    def get_by_application(self, application_id: str) -> List[ApplicationReview]:
        rows = self.db.execute(
            sql(f"""
                SELECT {REVIEW_COLUMNS} FROM application_reviews r
                WHERE r.application_id = :app_id
                ORDER BY r.assigned_at ASC, r.id ASC
            """),
            {"app_id": application_id}
        ).mappings().all()
        return [ApplicationReview(**r) for r in rows]

    def get_notes_by_application(self, application_id: str) -> List[ReviewNote]:
        """Reviewer notes without their votes, so reading them cannot bias a pending review."""
        rows = self.db.execute(
            sql("""
                SELECT r.admin_id, u.email AS admin_email, r.notes, r.created_at
                FROM application_reviews r
                JOIN users u ON r.admin_id = u.id
                WHERE r.application_id = :app_id AND r.notes IS NOT NULL AND r.notes != ''
                ORDER BY r.created_at ASC, r.id ASC
            """),
            {"app_id": application_id}
        ).mappings().all()
        return [ReviewNote(**r) for r in rows]

    def submit_vote(self, review_id: str, admin_id: str, vote: ReviewVote, notes=None) -> ApplicationReview:
        """Record a vote. A reviewer can only vote on their own assignment."""
        now = utcnow()
        result = self.db.execute(
            sql("""
                UPDATE application_reviews
                SET vote = :vote, notes = :notes, reviewed_at = :now, updated_at = :now
                WHERE id = :id AND admin_id = :admin_id
            """, "now"),
            {"id": review_id, "admin_id": admin_id, "vote": vote.value, "notes": notes, "now": now}
        )
        if result.rowcount == 0:
            raise NotFoundError("Review not found")

        logger.info(f"Reviewer {admin_id} voted {vote.value} on review {review_id}")
        return self.get_by_id(review_id)
