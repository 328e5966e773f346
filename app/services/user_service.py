"""
User Service - accounts and roles.

Accounts are provisioned from the identity provider; this service only keeps
the local row (id, email, role) and makes sure every admin / super_admin has
a workforce registry entry in the same transaction that made them one.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError
from app.db.postgres import sql, utcnow
from app.models import Reviewer
from app.schemas.schemas import UserResponse, UserRole, REVIEWER_ROLES
from app.services.workforce_registry import ensure_reviewer_entry

logger = logging.getLogger(__name__)


class UserService:

    def __init__(self, db: Session):
        self.db = db

    def create(self, email: str, role: UserRole = UserRole.hacker, external_id: Optional[str] = None) -> UserResponse:
        try:
            self.get_by_email(email)
        except NotFoundError:
            pass
        else:
            raise ConflictError("Email already registered")

        now = utcnow()
        user_id = str(uuid.uuid4())
        self.db.execute(
            sql("""
                INSERT INTO users (id, external_id, email, role, created_at, updated_at)
                VALUES (:id, :external_id, :email, :role, :now, :now)
            """, "now"),
            {"id": user_id, "external_id": external_id, "email": email, "role": role.value, "now": now}
        )

        ensure_reviewer_entry(self.db, user_id, role.value)
        return UserResponse(id=user_id, email=email, role=role, created_at=now)

    def get_by_id(self, user_id: str) -> UserResponse:
        row = self.db.execute(
            sql("SELECT id, email, role, created_at FROM users WHERE id = :id"),
            {"id": user_id}
        ).mappings().first()
        if not row:
            raise NotFoundError("User not found")
        return UserResponse(**row)

    def get_by_email(self, email: str) -> UserResponse:
        row = self.db.execute(
            sql("SELECT id, email, role, created_at FROM users WHERE LOWER(email) = LOWER(:email)"),
            {"email": email}
        ).mappings().first()
        if not row:
            raise NotFoundError("User not found")
        return UserResponse(**row)

    def list_reviewers(self) -> List[Reviewer]:
        """All admin / super_admin accounts, oldest first."""
        rows = self.db.execute(
            sql("""
                SELECT id, role, created_at FROM users
                WHERE role IN :roles
                ORDER BY created_at ASC, id ASC
            """, expanding=("roles",)),
            {"roles": list(REVIEWER_ROLES)}
        ).mappings().all()
        return [Reviewer(**r) for r in rows]

    def set_role(self, user_id: str, role: UserRole) -> UserResponse:
        result = self.db.execute(
            sql("UPDATE users SET role = :role, updated_at = :now WHERE id = :id", "now"),
            {"id": user_id, "role": role.value, "now": utcnow()}
        )
        if result.rowcount == 0:
            raise NotFoundError("User not found")

        ensure_reviewer_entry(self.db, user_id, role.value)
        logger.info(f"User {user_id} role set to {role.value}")
        return self.get_by_id(user_id)
