"""Application error taxonomy.

Every domain error carries a human-readable ``message``, a stable machine
``code`` and the HTTP status it maps to. Domain packages subclass one of
the categories below; a single exception handler in ``coursemart.main``
renders them.
"""

from typing import Any

from fastapi import status


class AppError(Exception):
    """Base application error."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "app_error"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code}


class ValidationError(AppError):
    """Input failed validation.

    ``errors`` lists every violated field, not just the first one.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "validation_error"

    def __init__(
        self,
        message: str = "Invalid input",
        errors: list[dict[str, str]] | None = None,
        code: str | None = None,
    ):
        self.errors = errors or []
        super().__init__(message, code)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "details": self.errors}


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"


class UpstreamError(AppError):
    """An external dependency failed or timed out. Safe to retry."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_code = "upstream_error"


class IntegrityError(AppError):
    """Stored references are inconsistent (e.g. a dangling id)."""

    default_code = "integrity_error"
