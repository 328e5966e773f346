"""
Cursor Pagination Utility

Opaque, bidirectional cursors over the application list, which is totally
ordered by (created_at, id). A cursor is the URL-safe base64 of
{"c": <timestamp>, "i": <id>}.

Seek predicates (never OFFSET, so pages stay stable under concurrent inserts):
- forward:  (created_at, id) < (cursor.c, cursor.i)   ORDER BY ... DESC
- backward: (created_at, id) > (cursor.c, cursor.i)   ORDER BY ... ASC, then reversed
"""

import base64
import binascii
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, ValidationError as PydanticValidationError

from app.core.errors import ValidationError
from app.db.postgres import as_utc

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


class ApplicationCursor(BaseModel):
    """Position marker in the (created_at DESC, id DESC) order."""
    model_config = ConfigDict(populate_by_name=True)

    created_at: datetime = Field(..., alias="c")
    id: str = Field(..., alias="i", min_length=1)

    @field_validator("created_at", mode="before")
    @classmethod
    def timestamp_must_be_text(cls, v):
        # pydantic would otherwise read a bare number as seconds since the epoch
        if not isinstance(v, (str, datetime)):
            raise ValueError("timestamp must be an RFC 3339 string")
        return v


def encode_cursor(created_at: datetime, id: str) -> str:
    """Create an opaque cursor string for the item at (created_at, id)."""
    cursor = ApplicationCursor(created_at=as_utc(created_at), id=id)
    data = cursor.model_dump_json(by_alias=True).encode("utf-8")
    return base64.urlsafe_b64encode(data).decode("ascii")


def decode_cursor(encoded: str) -> ApplicationCursor:
    """
    Parse a cursor produced by encode_cursor.

    Raises ValidationError on bad base64, bad JSON or missing fields.
    Missing base64 padding is tolerated.
    """
    try:
        padded = encoded + "=" * (-len(encoded) % 4)
        data = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError, ValueError):
        raise ValidationError("invalid cursor encoding")

    try:
        cursor = ApplicationCursor.model_validate_json(data)
    except PydanticValidationError:
        raise ValidationError("invalid cursor format")

    cursor.created_at = as_utc(cursor.created_at)
    return cursor
