"""
Translation of service errors into HTTP responses.

TransientStoreError and CorruptSettingError are not mapped here; they reach
the global handlers in app.main and become a generic 500.
"""

from fastapi import HTTPException

from app.core.errors import AppError, NotFoundError, ForbiddenError, ConflictError, ValidationError

STATUS_CODES = {
    NotFoundError: 404,
    ForbiddenError: 403,
    ConflictError: 409,
    ValidationError: 400,
}

# Errors a route is expected to turn into a client response
CLIENT_ERRORS = tuple(STATUS_CODES)


def http_error(error: AppError) -> HTTPException:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=500, detail="Internal server error")
