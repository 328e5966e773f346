"""
Review Assignment Service - distributes submitted applications to reviewers.

Two entry points, each run inside one caller-owned transaction:

1. batch_assign (super admin "rebalance")
   - backfill the workforce registry
   - evict pending reviews held by disabled reviewers
   - top every submitted application up to the quota, round-robin over the
     enabled reviewers with the lightest pending load first

2. assign_next (reviewer "pull next")
   - claim the single neediest application the caller has not reviewed yet,
     skipping rows another reviewer is claiming at the same moment

Both insert with ON CONFLICT (application_id, admin_id) DO NOTHING, so a
reviewer can never hold two records for one application however the two
paths interleave.
"""

import logging
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Set

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.postgres import lock_clause, sql, utcnow
from app.models import NeedyApplication, Reviewer
from app.schemas.schemas import (
    ApplicationReview, BatchAssignmentResult, ReviewerResponse, REVIEWER_ROLES
)
from app.services.user_service import UserService
from app.services.workforce_registry import WorkforceRegistry, default_enabled

logger = logging.getLogger(__name__)

INSERT_REVIEW = """
    INSERT INTO application_reviews
        (id, application_id, admin_id, assigned_at, created_at, updated_at)
    VALUES (:id, :app_id, :admin_id, :now, :now, :now)
    ON CONFLICT (application_id, admin_id) DO NOTHING
"""

REVIEW_COLUMNS = """
    id, application_id, admin_id, vote, notes,
    assigned_at, reviewed_at, created_at, updated_at
"""


class ReviewAssignmentService:

    def __init__(self, db: Session):
        self.db = db

    # --------------------------------------------------------
    # Batch rebalance
    # --------------------------------------------------------

    def batch_assign(self, reviews_per_app: int) -> BatchAssignmentResult:
        """
        Rebalance reviews across the enabled workforce.

        Every read and write happens in self.db; the caller commits or rolls
        back the whole run.
        """
        reviewers = UserService(self.db).list_reviewers()

        registry = WorkforceRegistry(self.db).load(for_update=True)
        registry.sync(reviewers)
        registry.save()

        evicted = self._evict_disabled(registry.disabled_ids())

        eligible = [r for r in self._reviewers_by_load() if registry.is_enabled(r.id)]
        if not eligible:
            logger.info(f"Rebalance: no enabled reviewers (evicted={evicted})")
            return BatchAssignmentResult(reviews_created=0)

        needy = self._needy_applications(reviews_per_app)
        if not needy:
            logger.info(f"Rebalance: no applications below quota {reviews_per_app} (evicted={evicted})")
            return BatchAssignmentResult(reviews_created=0)

        held = self._existing_pairs([a.id for a in needy])
        now = utcnow()
        created = 0

        # One rotation index for the whole run, so consecutive applications
        # start from different reviewers
        index = 0
        for app in needy:
            needed = reviews_per_app - app.reviews_assigned
            for _ in range(len(eligible)):
                if needed <= 0:
                    break
                reviewer = eligible[index % len(eligible)]
                index += 1

                if reviewer.id == app.user_id or reviewer.id in held[app.id]:
                    continue
                if self._insert_review(app.id, reviewer.id, now):
                    held[app.id].add(reviewer.id)
                    created += 1
                    needed -= 1

        logger.info(
            f"Rebalance: reviewers={len(reviewers)} eligible={len(eligible)} "
            f"needy={len(needy)} evicted={evicted} created={created}"
        )
        return BatchAssignmentResult(reviews_created=created)

    def _evict_disabled(self, disabled_ids: List[str]) -> int:
        """Hard-delete pending reviews held by disabled reviewers. Completed votes stay."""
        if not disabled_ids:
            return 0
        result = self.db.execute(
            sql("""
                DELETE FROM application_reviews
                WHERE vote IS NULL AND admin_id IN :ids
            """, expanding=("ids",)),
            {"ids": disabled_ids}
        )
        return result.rowcount

    def _reviewers_by_load(self) -> List[Reviewer]:
        """Reviewer accounts, lightest pending load first, then oldest account."""
        rows = self.db.execute(
            sql("""
                SELECT u.id, u.role, u.created_at, COUNT(r.id) AS pending
                FROM users u
                LEFT JOIN application_reviews r ON r.admin_id = u.id AND r.vote IS NULL
                WHERE u.role IN :roles
                GROUP BY u.id, u.role, u.created_at
                ORDER BY pending ASC, u.created_at ASC, u.id ASC
            """, expanding=("roles",)),
            {"roles": list(REVIEWER_ROLES)}
        ).mappings().all()
        return [Reviewer(id=r["id"], role=r["role"], created_at=r["created_at"]) for r in rows]

    def _needy_applications(self, reviews_per_app: int) -> List[NeedyApplication]:
        rows = self.db.execute(
            sql(f"""
                SELECT id, user_id, reviews_assigned FROM applications
                WHERE status = 'submitted' AND reviews_assigned < :quota
                ORDER BY reviews_assigned ASC, submitted_at ASC, id ASC
                {lock_clause(self.db)}
            """),
            {"quota": reviews_per_app}
        ).mappings().all()
        return [NeedyApplication(**r) for r in rows]

    def _existing_pairs(self, application_ids: List[str]) -> Dict[str, Set[str]]:
        rows = self.db.execute(
            sql("""
                SELECT application_id, admin_id FROM application_reviews
                WHERE application_id IN :ids
            """, expanding=("ids",)),
            {"ids": application_ids}
        ).fetchall()
        held = defaultdict(set)
        for app_id, admin_id in rows:
            held[app_id].add(admin_id)
        return held

    def _insert_review(self, application_id: str, admin_id: str, now: datetime) -> bool:
        """Returns False when the pair already existed."""
        result = self.db.execute(
            sql(INSERT_REVIEW, "now"),
            {"id": str(uuid.uuid4()), "app_id": application_id, "admin_id": admin_id, "now": now}
        )
        return result.rowcount > 0

    # --------------------------------------------------------
    # Pull next
    # --------------------------------------------------------

    def assign_next(self, admin_id: str, reviews_per_app: int) -> ApplicationReview:
        """
        Claim one application for admin_id.

        Rows locked by a concurrent claimant are skipped rather than waited on,
        so two reviewers pulling at once get different applications.
        """
        row = self.db.execute(
            sql(f"""
                SELECT a.id FROM applications a
                WHERE a.status = 'submitted'
                  AND a.reviews_assigned < :quota
                  AND a.user_id != :admin_id
                  AND NOT EXISTS (
                      SELECT 1 FROM application_reviews r
                      WHERE r.application_id = a.id AND r.admin_id = :admin_id
                  )
                ORDER BY a.reviews_assigned ASC, a.submitted_at ASC, a.id ASC
                LIMIT 1
                {lock_clause(self.db, skip_locked=True)}
            """),
            {"quota": reviews_per_app, "admin_id": admin_id}
        ).fetchone()

        if not row:
            logger.debug(f"Pull-next: nothing to assign to {admin_id}")
            raise NotFoundError("no applications need review")

        application_id = row[0]
        if self._insert_review(application_id, admin_id, utcnow()):
            logger.info(f"Pull-next: assigned application {application_id} to {admin_id}")

        # On conflict this is the record that was already there
        existing = self.db.execute(
            sql(f"""
                SELECT {REVIEW_COLUMNS} FROM application_reviews
                WHERE application_id = :app_id AND admin_id = :admin_id
            """),
            {"app_id": application_id, "admin_id": admin_id}
        ).mappings().first()
        return ApplicationReview(**existing)

    # --------------------------------------------------------
    # Workforce administration
    # --------------------------------------------------------

    def list_reviewers(self) -> List[ReviewerResponse]:
        """
        Every reviewer account with its pending load and assignment flag.

        Reviewers without a registry entry yet are shown with the default the
        next sync will give them.
        """
        registry = WorkforceRegistry(self.db).load()
        rows = self.db.execute(
            sql("""
                SELECT u.id, u.email, u.role, u.created_at, COUNT(r.id) AS pending_reviews
                FROM users u
                LEFT JOIN application_reviews r ON r.admin_id = u.id AND r.vote IS NULL
                WHERE u.role IN :roles
                GROUP BY u.id, u.email, u.role, u.created_at
                ORDER BY u.created_at ASC, u.id ASC
            """, expanding=("roles",)),
            {"roles": list(REVIEWER_ROLES)}
        ).mappings().all()

        reviewers = []
        for r in rows:
            enabled = registry.is_enabled(r["id"]) if registry.has_entry(r["id"]) else default_enabled(r["role"])
            reviewers.append(ReviewerResponse(enabled=enabled, **r))
        return reviewers

    def is_enabled(self, reviewer_id: str, role: str) -> bool:
        registry = WorkforceRegistry(self.db).load()
        if registry.has_entry(reviewer_id):
            return registry.is_enabled(reviewer_id)
        return default_enabled(role)

    def set_enabled(self, reviewer_id: str, enabled: bool) -> None:
        """
        Toggle a reviewer's opt-in flag. Takes effect for pending work at the
        next rebalance.
        """
        user = UserService(self.db).get_by_id(reviewer_id)
        if user.role.value not in REVIEWER_ROLES:
            raise NotFoundError("Reviewer not found")

        registry = WorkforceRegistry(self.db).load(for_update=True)
        registry.set_enabled(reviewer_id, enabled)
        registry.save()
        logger.info(f"Reviewer {reviewer_id} assignment {'enabled' if enabled else 'disabled'}")
