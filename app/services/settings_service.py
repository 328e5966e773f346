"""
Settings Service - key/value JSON documents in the `settings` table.

Keys in use:
- reviews_per_application     JSON integer, the review quota (default 3, range 1-10)
- review_assignment_enabled   workforce registry (see workforce_registry.py)
- short_answer_questions      list of questions shown on the application form
- scan_types                  event scan types (check-in, meals, swag)

Every method runs inside the caller's session, so a document read with
for_update=True stays locked until that transaction ends.
"""

import json
import logging
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError, CorruptSettingError
from app.db.postgres import lock_clause, sql, utcnow
from app.schemas.schemas import ScanType, ScanTypeCategory, ShortAnswerQuestion

logger = logging.getLogger(__name__)

SETTINGS_KEY_SHORT_ANSWER_QUESTIONS = "short_answer_questions"
SETTINGS_KEY_REVIEWS_PER_APPLICATION = "reviews_per_application"
SETTINGS_KEY_REVIEW_ASSIGNMENT_ENABLED = "review_assignment_enabled"
SETTINGS_KEY_SCAN_TYPES = "scan_types"

DEFAULT_REVIEWS_PER_APPLICATION = 3
MIN_REVIEWS_PER_APPLICATION = 1
MAX_REVIEWS_PER_APPLICATION = 10

_QUESTIONS = TypeAdapter(List[ShortAnswerQuestion])
_SCAN_TYPES = TypeAdapter(List[ScanType])


class SettingsStore:
    """Generic document access plus the typed settings built on it."""

    def __init__(self, db: Session):
        self.db = db

    # --------------------------------------------------------
    # Raw documents
    # --------------------------------------------------------

    def get(self, key: str, for_update: bool = False) -> str:
        """Return the raw JSON document under key, or raise NotFoundError."""
        result = self.db.execute(
            sql(f"SELECT value FROM settings WHERE key = :key {lock_clause(self.db) if for_update else ''}"),
            {"key": key}
        )
        row = result.fetchone()
        if not row:
            raise NotFoundError(f"setting '{key}' not found")
        return row[0]

    def insert_if_absent(self, key: str, value: str) -> None:
        """Create the document with value unless it already exists."""
        self.db.execute(
            sql("""
                INSERT INTO settings (key, value, updated_at)
                VALUES (:key, :value, :now)
                ON CONFLICT (key) DO NOTHING
            """, "now"),
            {"key": key, "value": value, "now": utcnow()}
        )

    def upsert(self, key: str, value: str) -> None:
        self.db.execute(
            sql("""
                INSERT INTO settings (key, value, updated_at)
                VALUES (:key, :value, :now)
                ON CONFLICT (key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """, "now"),
            {"key": key, "value": value, "now": utcnow()}
        )

    # --------------------------------------------------------
    # Quota policy
    # --------------------------------------------------------

    def get_reviews_per_application(self) -> int:
        """Configured review quota; 3 when unset, clamped to [1, 10]."""
        try:
            raw = self.get(SETTINGS_KEY_REVIEWS_PER_APPLICATION)
        except NotFoundError:
            return DEFAULT_REVIEWS_PER_APPLICATION

        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            raise CorruptSettingError(f"{SETTINGS_KEY_REVIEWS_PER_APPLICATION} is not valid JSON")
        if isinstance(value, bool) or not isinstance(value, int):
            raise CorruptSettingError(f"{SETTINGS_KEY_REVIEWS_PER_APPLICATION} is not an integer")

        return max(MIN_REVIEWS_PER_APPLICATION, min(MAX_REVIEWS_PER_APPLICATION, value))

    def set_reviews_per_application(self, value: int) -> None:
        validate_reviews_per_application(value)
        self.upsert(SETTINGS_KEY_REVIEWS_PER_APPLICATION, json.dumps(value))
        logger.info(f"Review quota set to {value}")

    # --------------------------------------------------------
    # Short answer questions
    # --------------------------------------------------------

    def get_short_answer_questions(self) -> List[ShortAnswerQuestion]:
        try:
            raw = self.get(SETTINGS_KEY_SHORT_ANSWER_QUESTIONS)
        except NotFoundError:
            return []
        try:
            questions = _QUESTIONS.validate_json(raw)
        except PydanticValidationError:
            raise CorruptSettingError(f"{SETTINGS_KEY_SHORT_ANSWER_QUESTIONS} has an unknown shape")
        return sorted(questions, key=lambda q: q.display_order)

    def update_short_answer_questions(self, questions: List[ShortAnswerQuestion]) -> None:
        seen = set()
        for q in questions:
            if q.id in seen:
                raise ValidationError(f"duplicate question ID: {q.id}")
            seen.add(q.id)
        self.upsert(SETTINGS_KEY_SHORT_ANSWER_QUESTIONS, _QUESTIONS.dump_json(questions).decode("utf-8"))

    # --------------------------------------------------------
    # Scan types
    # --------------------------------------------------------

    def get_scan_types(self) -> List[ScanType]:
        try:
            raw = self.get(SETTINGS_KEY_SCAN_TYPES)
        except NotFoundError:
            return []
        try:
            return _SCAN_TYPES.validate_json(raw)
        except PydanticValidationError:
            raise CorruptSettingError(f"{SETTINGS_KEY_SCAN_TYPES} has an unknown shape")

    def update_scan_types(self, scan_types: List[ScanType]) -> None:
        """Replace the whole list. Names must be unique and at least one type must be a check-in."""
        seen = set()
        for st in scan_types:
            if st.name in seen:
                raise ValidationError(f"duplicate scan type name: {st.name}")
            seen.add(st.name)
        if not any(st.category == ScanTypeCategory.check_in for st in scan_types):
            raise ValidationError("must have at least one scan type with check_in category")

        self.upsert(SETTINGS_KEY_SCAN_TYPES, _SCAN_TYPES.dump_json(scan_types).decode("utf-8"))
        logger.info(f"Scan types replaced ({len(scan_types)} defined)")


def validate_reviews_per_application(value: Optional[int]) -> int:
    """Reject a quota outside [1, 10] before any transaction opens."""
    if value is None or isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("reviews_per_application must be an integer")
    if not MIN_REVIEWS_PER_APPLICATION <= value <= MAX_REVIEWS_PER_APPLICATION:
        raise ValidationError(
            f"reviews_per_application must be between {MIN_REVIEWS_PER_APPLICATION} "
            f"and {MAX_REVIEWS_PER_APPLICATION}"
        )
    return value
