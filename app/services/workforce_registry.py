"""
Workforce Registry - which reviewers may receive new assignments.

Stored as one JSON document under settings key `review_assignment_enabled`:

    [{"id": "<user id>", "enabled": true}, ...]

Older deployments wrote a flat list of enabled reviewer IDs:

    ["<user id>", ...]

That legacy shape is still accepted on read (every listed reviewer enabled)
and is rewritten in the current shape by the next save. Anything else raises
CorruptSettingError rather than being treated as an empty registry.

The document is read-modify-written as a whole, so load(for_update=True) must
be used whenever the caller intends to save: it creates an empty document if
none exists yet, then takes a row lock on the settings row that is held until
the surrounding transaction ends.
"""

import json
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, CorruptSettingError
from app.models import WorkforceEntry, WORKFORCE_ENTRIES, LEGACY_WORKFORCE_IDS, Reviewer
from app.schemas.schemas import UserRole
from app.services.settings_service import SettingsStore, SETTINGS_KEY_REVIEW_ASSIGNMENT_ENABLED

logger = logging.getLogger(__name__)


def decode_entries(raw: str) -> Tuple[List[WorkforceEntry], bool]:
    """
    Decode a registry document.

    Returns (entries, is_legacy). Tries the entry-object list first, then the
    legacy flat ID list.
    """
    try:
        return WORKFORCE_ENTRIES.validate_json(raw), False
    except PydanticValidationError:
        pass

    try:
        ids = LEGACY_WORKFORCE_IDS.validate_json(raw)
    except PydanticValidationError:
        raise CorruptSettingError(f"{SETTINGS_KEY_REVIEW_ASSIGNMENT_ENABLED} has an unknown shape")

    return [WorkforceEntry(id=i, enabled=True) for i in ids], True


def encode_entries(entries: Iterable[WorkforceEntry]) -> str:
    return json.dumps([e.model_dump() for e in entries])


def default_enabled(role: str) -> bool:
    """Admins are opted in by default, super admins opt in manually."""
    return role == UserRole.admin.value


class WorkforceRegistry:
    """
    In-transaction view of the registry document.

    Usage:
        registry = WorkforceRegistry(db).load(for_update=True)
        changed = registry.sync(reviewers)
        if changed:
            registry.save()
    """

    def __init__(self, db: Session):
        self.store = SettingsStore(db)
        self._entries: Dict[str, bool] = {}
        self._exists = False
        self._dirty = False

    def load(self, for_update: bool = False) -> "WorkforceRegistry":
        if for_update:
            # FOR UPDATE on a missing row locks nothing, so create it first
            self.store.insert_if_absent(SETTINGS_KEY_REVIEW_ASSIGNMENT_ENABLED, "[]")
        try:
            raw = self.store.get(SETTINGS_KEY_REVIEW_ASSIGNMENT_ENABLED, for_update=for_update)
        except NotFoundError:
            self._entries = {}
            self._exists = False
            self._dirty = False
            return self

        entries, legacy = decode_entries(raw)
        if legacy:
            logger.warning(
                f"{SETTINGS_KEY_REVIEW_ASSIGNMENT_ENABLED} uses the legacy ID-list encoding; "
                f"it will be rewritten as entry objects on the next save"
            )

        # dict keeps first-seen order; a duplicated id keeps its first flag
        self._entries = {}
        for entry in entries:
            self._entries.setdefault(entry.id, entry.enabled)
        self._exists = True
        self._dirty = legacy
        return self

    @property
    def entries(self) -> List[WorkforceEntry]:
        return [WorkforceEntry(id=i, enabled=e) for i, e in self._entries.items()]

    @property
    def dirty(self) -> bool:
        """True when the in-memory document differs from what is stored."""
        return self._dirty or not self._exists

    def is_enabled(self, reviewer_id: str) -> bool:
        """Absent reviewers are never eligible."""
        return self._entries.get(reviewer_id, False)

    def has_entry(self, reviewer_id: str) -> bool:
        return reviewer_id in self._entries

    def sync(self, reviewers: Iterable[Reviewer]) -> bool:
        """Add a default entry for every reviewer missing one. Returns whether anything was added."""
        added = 0
        for reviewer in reviewers:
            if reviewer.id not in self._entries:
                self._entries[reviewer.id] = default_enabled(reviewer.role)
                added += 1

        if added:
            self._dirty = True
            logger.info(f"Workforce registry backfilled {added} reviewer(s)")
        return added > 0

    def ensure(self, reviewer_id: str, role: str) -> bool:
        """Add reviewer_id with its role default if missing."""
        if reviewer_id in self._entries:
            return False
        self._entries[reviewer_id] = default_enabled(role)
        self._dirty = True
        return True

    def set_enabled(self, reviewer_id: str, enabled: bool) -> None:
        if reviewer_id in self._entries and self._entries[reviewer_id] == enabled:
            return
        self._entries[reviewer_id] = enabled
        self._dirty = True

    def disabled_ids(self) -> List[str]:
        return [i for i, enabled in self._entries.items() if not enabled]

    def save(self) -> bool:
        """Persist the document if it changed. Returns whether a write happened."""
        if not self.dirty:
            return False
        self.store.upsert(SETTINGS_KEY_REVIEW_ASSIGNMENT_ENABLED, encode_entries(self.entries))
        self._exists = True
        self._dirty = False
        return True


def ensure_reviewer_entry(db: Session, reviewer_id: str, role: Optional[str]) -> None:
    """Give a newly created or promoted reviewer their registry entry, in the caller's transaction."""
    if role not in (UserRole.admin.value, UserRole.super_admin.value):
        return
    registry = WorkforceRegistry(db).load(for_update=True)
    if registry.ensure(reviewer_id, role):
        registry.save()
