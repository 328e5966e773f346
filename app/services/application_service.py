"""
Application Service - the applicant-facing application record.

Lifecycle:
    draft --submit--> submitted --(super admin decision)--> accepted | rejected | waitlisted

Only `submitted` applications are handed to reviewers. `reviews_assigned` is
never written here: a trigger on application_reviews keeps it in step with
the ledger.
"""

import json
import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.postgres import sql, utcnow
from app.schemas.schemas import (
    ApplicationResponse, ApplicationUpdate, ApplicationListItem, ApplicationListResponse,
    ApplicationStats, ApplicationStatus, DecisionStatus, PaginationDirection
)
from app.services.settings_service import SettingsStore
from app.utils.pagination import ApplicationCursor, encode_cursor, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

logger = logging.getLogger(__name__)

APPLICATION_COLUMNS = """
    id, user_id, status,
    first_name, last_name, phone_e164, age,
    country_of_residence, university, major, level_of_study,
    hackathons_attended_count, software_experience_level, heard_about,
    shirt_size, dietary_restrictions, accommodations,
    github, linkedin, website, short_answer_responses,
    ack_application, ack_code_of_conduct, ack_privacy,
    reviews_assigned, submitted_at, created_at, updated_at
"""

# Columns stored as JSON text
JSON_FIELDS = ("dietary_restrictions", "short_answer_responses")

# Must be filled before submit
REQUIRED_FIELDS = ("first_name", "last_name", "university")
REQUIRED_ACKS = ("ack_application", "ack_code_of_conduct", "ack_privacy")


def _to_application(row) -> ApplicationResponse:
    data = dict(row)
    for field in JSON_FIELDS:
        if isinstance(data.get(field), str):
            data[field] = json.loads(data[field])
    return ApplicationResponse(**data)


class ApplicationService:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, application_id: str) -> ApplicationResponse:
        row = self.db.execute(
            sql(f"SELECT {APPLICATION_COLUMNS} FROM applications WHERE id = :id"),
            {"id": application_id}
        ).mappings().first()
        if not row:
            raise NotFoundError("Application not found")
        return _to_application(row)

    def get_by_user_id(self, user_id: str) -> ApplicationResponse:
        row = self.db.execute(
            sql(f"SELECT {APPLICATION_COLUMNS} FROM applications WHERE user_id = :uid"),
            {"uid": user_id}
        ).mappings().first()
        if not row:
            raise NotFoundError("Application not found")
        return _to_application(row)

    def get_or_create_for_user(self, user_id: str) -> ApplicationResponse:
        try:
            return self.get_by_user_id(user_id)
        except NotFoundError:
            pass

        now = utcnow()
        self.db.execute(
            sql("""
                INSERT INTO applications (id, user_id, status, created_at, updated_at)
                VALUES (:id, :uid, 'draft', :now, :now)
                ON CONFLICT (user_id) DO NOTHING
            """, "now"),
            {"id": str(uuid.uuid4()), "uid": user_id, "now": now}
        )
        return self.get_by_user_id(user_id)

    def update(self, user_id: str, update: ApplicationUpdate) -> ApplicationResponse:
        """Write the fields present in the request. Only drafts can change."""
        app = self.get_by_user_id(user_id)
        if app.status != ApplicationStatus.draft:
            raise ConflictError("Application is not in draft status")

        fields = update.model_dump(exclude_unset=True)
        if not fields:
            return app

        updates = []
        params = {"id": app.id, "now": utcnow()}
        for field, value in fields.items():
            if field in JSON_FIELDS:
                if value is None:
                    value = [] if field == "dietary_restrictions" else {}
                value = json.dumps(value)
            updates.append(f"{field} = :{field}")
            params[field] = value

        self.db.execute(
            sql(
                f"UPDATE applications SET {', '.join(updates)}, updated_at = :now "
                f"WHERE id = :id AND status = 'draft'",
                "now"
            ),
            params
        )
        return self.get_by_id(app.id)

    def submit(self, user_id: str) -> ApplicationResponse:
        app = self.get_by_user_id(user_id)
        if app.status != ApplicationStatus.draft:
            raise ConflictError("Application is not in draft status")

        missing = [f for f in REQUIRED_FIELDS if not getattr(app, f)]
        missing += [f for f in REQUIRED_ACKS if not getattr(app, f)]
        for question in SettingsStore(self.db).get_short_answer_questions():
            if question.required and not app.short_answer_responses.get(question.id, "").strip():
                missing.append(f"short_answer_responses.{question.id}")
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        now = utcnow()
        result = self.db.execute(
            sql("""
                UPDATE applications SET status = 'submitted', submitted_at = :now, updated_at = :now
                WHERE id = :id AND status = 'draft'
            """, "now"),
            {"id": app.id, "now": now}
        )
        if result.rowcount == 0:
            raise ConflictError("Application is not in draft status")

        logger.info(f"Application {app.id} submitted")
        return self.get_by_id(app.id)

    def set_status(self, application_id: str, status: DecisionStatus) -> ApplicationResponse:
        """Record the final decision. Drafts cannot be decided."""
        result = self.db.execute(
            sql("""
                UPDATE applications SET status = :status, updated_at = :now
                WHERE id = :id AND status != 'draft'
            """, "now"),
            {"id": application_id, "status": status.value, "now": utcnow()}
        )
        if result.rowcount == 0:
            self.get_by_id(application_id)  # raises NotFoundError when absent
            raise ConflictError("Application has not been submitted")
        return self.get_by_id(application_id)

    def get_stats(self) -> ApplicationStats:
        rows = self.db.execute(
            sql("SELECT status, COUNT(*) AS n FROM applications GROUP BY status")
        ).fetchall()
        counts = {status.value: 0 for status in ApplicationStatus}
        for status, n in rows:
            counts[status] = n

        total = sum(counts.values())
        decided = counts["accepted"] + counts["rejected"] + counts["waitlisted"]
        rate = round(counts["accepted"] / decided * 100, 2) if decided else 0.0
        return ApplicationStats(total_applications=total, acceptance_rate=rate, **counts)

    def list(
        self,
        status: Optional[ApplicationStatus] = None,
        cursor: Optional[ApplicationCursor] = None,
        direction: PaginationDirection = PaginationDirection.forward,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ApplicationListResponse:
        """
        One page of applications in (created_at DESC, id DESC) order.

        Fetches limit + 1 rows to know whether more exist. A backward page is
        read in ascending order and reversed, so items always come back newest
        first whichever way the caller is moving.
        """
        if limit <= 0:
            limit = DEFAULT_PAGE_SIZE
        limit = min(limit, MAX_PAGE_SIZE)

        # Backward needs a position to move back from
        backward = direction == PaginationDirection.backward and cursor is not None

        query = """
            SELECT a.id, a.user_id, u.email, a.status,
                   a.first_name, a.last_name, a.university,
                   a.submitted_at, a.created_at
            FROM applications a
            JOIN users u ON a.user_id = u.id
            WHERE 1 = 1
        """
        params = {"limit": limit + 1}

        if status:
            query += " AND a.status = :status"
            params["status"] = status.value
        if cursor:
            query += " AND (a.created_at, a.id) > (:cursor_created_at, :cursor_id)" if backward \
                else " AND (a.created_at, a.id) < (:cursor_created_at, :cursor_id)"
            params["cursor_created_at"] = cursor.created_at
            params["cursor_id"] = cursor.id

        query += " ORDER BY a.created_at ASC, a.id ASC" if backward else " ORDER BY a.created_at DESC, a.id DESC"
        query += " LIMIT :limit"

        timestamps = ("cursor_created_at",) if cursor else ()
        rows = self.db.execute(sql(query, *timestamps), params).mappings().all()
        items = [ApplicationListItem(**r) for r in rows]

        has_more = len(items) > limit
        items = items[:limit]
        if backward:
            items.reverse()

        next_cursor = prev_cursor = None
        if items:
            first, last = items[0], items[-1]
            if backward:
                next_cursor = encode_cursor(last.created_at, last.id)
                if has_more:
                    prev_cursor = encode_cursor(first.created_at, first.id)
            else:
                if has_more:
                    next_cursor = encode_cursor(last.created_at, last.id)
                if cursor:
                    prev_cursor = encode_cursor(first.created_at, first.id)

        return ApplicationListResponse(
            applications=items, next_cursor=next_cursor, prev_cursor=prev_cursor, has_more=has_more
        )
