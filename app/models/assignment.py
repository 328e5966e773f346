"""
Internal data structures for the review-assignment core.

These never cross the API boundary directly; routes convert them into
schemas from app.schemas.schemas.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, TypeAdapter


class WorkforceEntry(BaseModel):
    """One reviewer's opt-in flag inside the workforce registry document."""
    id: str = Field(..., min_length=1)
    enabled: bool


# Current encoding: [{"id": "...", "enabled": true}, ...]
WORKFORCE_ENTRIES = TypeAdapter(List[WorkforceEntry])

# Legacy encoding: ["<reviewer id>", ...] - every listed reviewer enabled
LEGACY_WORKFORCE_IDS = TypeAdapter(List[str])


class Reviewer(BaseModel):
    """An admin / super_admin account as seen by the registry sync."""
    id: str
    role: str
    created_at: datetime


class NeedyApplication(BaseModel):
    """A submitted application still short of its review quota."""
    id: str
    user_id: str
    reviews_assigned: int
