"""
Models module - Pydantic models for internal data transfer.

These models are used for:
- Decoding settings documents (workforce registry)
- Passing reviewers / needy applications between assignment steps
"""

from app.models.assignment import (
    WorkforceEntry,
    WORKFORCE_ENTRIES,
    LEGACY_WORKFORCE_IDS,
    Reviewer,
    NeedyApplication,
)

__all__ = [
    "WorkforceEntry",
    "WORKFORCE_ENTRIES",
    "LEGACY_WORKFORCE_IDS",
    "Reviewer",
    "NeedyApplication",
]
