"""
Domain errors raised by the services layer.

Routes translate these into HTTP responses:
- NotFoundError       -> 404 (expected empty states, e.g. no work to pull)
- ForbiddenError      -> 403 (action not allowed yet, e.g. claiming swag before check-in)
- ConflictError       -> 409 (state transition not allowed, duplicate email or scan)
- ValidationError     -> 400 (malformed cursor, quota out of range)
- TransientStoreError -> 500 (lock/statement timeout, lost connection; safe to retry)
- CorruptSettingError -> 500 (settings document in an unknown shape)
"""


class AppError(Exception):
    """Base class for all service-level errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class TransientStoreError(AppError):
    pass


class CorruptSettingError(AppError):
    """A settings document matched none of its known encodings."""
