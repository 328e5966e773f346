"""
Scan Service - event-day check-ins, meals and swag.

A scan records that staff scanned an attendee's badge for one scan type.
Each attendee can be scanned at most once per type; the unique
(user_id, scan_type) constraint enforces it. Types other than check_in
are only claimable after the attendee has been scanned for some check_in
type.
"""

import logging
import uuid
from typing import List

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, ForbiddenError, ValidationError
from app.db.postgres import sql, utcnow
from app.schemas.schemas import Scan, ScanStat, ScanType, ScanTypeCategory
from app.services.settings_service import SettingsStore
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

SCAN_COLUMNS = "id, user_id, scan_type, scanned_by, scanned_at, created_at"


class ScanService:

    def __init__(self, db: Session):
        self.db = db

    def get_scan_types(self) -> List[ScanType]:
        return SettingsStore(self.db).get_scan_types()

    def create(self, user_id: str, scan_type: str, scanned_by: str) -> Scan:
        scan_types = self.get_scan_types()
        found = next((st for st in scan_types if st.name == scan_type), None)
        if found is None:
            raise ValidationError(f"invalid scan type: {scan_type}")
        if not found.is_active:
            raise ValidationError(f"scan type is not active: {scan_type}")

        UserService(self.db).get_by_id(user_id)

        if found.category != ScanTypeCategory.check_in:
            check_in_types = [st.name for st in scan_types if st.category == ScanTypeCategory.check_in]
            if not self._has_check_in(user_id, check_in_types):
                raise ForbiddenError("user must check in before claiming items")

        now = utcnow()
        scan_id = str(uuid.uuid4())
        result = self.db.execute(
            sql("""
                INSERT INTO scans (id, user_id, scan_type, scanned_by, scanned_at, created_at)
                VALUES (:id, :user_id, :scan_type, :scanned_by, :now, :now)
                ON CONFLICT (user_id, scan_type) DO NOTHING
            """, "now"),
            {"id": scan_id, "user_id": user_id, "scan_type": scan_type, "scanned_by": scanned_by, "now": now}
        )
        if result.rowcount == 0:
            raise ConflictError(f"user already scanned for: {scan_type}")

        logger.info(f"Scan {scan_type} recorded for {user_id} by {scanned_by}")
        return Scan(
            id=scan_id, user_id=user_id, scan_type=scan_type,
            scanned_by=scanned_by, scanned_at=now, created_at=now
        )

    def _has_check_in(self, user_id: str, check_in_types: List[str]) -> bool:
        if not check_in_types:
            return False
        row = self.db.execute(
            sql("""
                SELECT 1 FROM scans
                WHERE user_id = :user_id AND scan_type IN :types
                LIMIT 1
            """, expanding=("types",)),
            {"user_id": user_id, "types": check_in_types}
        ).fetchone()
        return row is not None

    def get_by_user(self, user_id: str) -> List[Scan]:
        """Newest first."""
        rows = self.db.execute(
            sql(f"""
                SELECT {SCAN_COLUMNS} FROM scans
                WHERE user_id = :user_id
                ORDER BY scanned_at DESC, id DESC
            """),
            {"user_id": user_id}
        ).mappings().all()
        return [Scan(**r) for r in rows]

    def get_stats(self) -> List[ScanStat]:
        rows = self.db.execute(
            sql("""
                SELECT scan_type, COUNT(*) AS count FROM scans
                GROUP BY scan_type
                ORDER BY scan_type ASC
            """)
        ).mappings().all()
        return [ScanStat(**r) for r in rows]
