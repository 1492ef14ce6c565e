"""
Error Taxonomy

Every failure a service can raise maps to one stable HTTP status code. The API
layer turns these into the error envelope; services never build responses.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[list[Any]] = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or out-of-range input (bad quantity, enum, id...)."""

    status_code = 400
    default_message = "Validation failed"


class EmptyPatch(ValidationError):
    """An update was requested with no fields to change."""

    default_message = "No fields to update"


class InvalidSortColumn(ValidationError):
    """Requested sort column is not in the entity's whitelist."""

    default_message = "Invalid sort column"

    def __init__(self, column: str, allowed: Optional[list[str]] = None) -> None:
        super().__init__(f"Invalid sort column: {column}", errors=allowed)
        self.column = column


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Resource conflict"


class RateLimited(AppError):
    status_code = 429
    default_message = "Too many requests, please try again later"


class StoreError(AppError):
    """Underlying store failure. Message stays generic; the cause is chained."""

    status_code = 500
    default_message = "Database operation failed"
