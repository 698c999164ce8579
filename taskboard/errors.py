"""
Exception taxonomy shared by every layer.

Two families live here:

* ``CredentialError`` and its subclasses are raised by the token codec only.
  The authentication gate translates them into ``UnauthorizedError``.
* ``AppError`` subclasses carry everything the exception handlers need to
  build the error envelope: HTTP status, machine code, message and optional
  field-level details.
"""

from typing import Any, Optional

from fastapi import status


# ── Token verification ────────────────────────────────────────────────────────

class CredentialError(Exception):
    """Base class for token verification failures."""


class ExpiredCredential(CredentialError):
    """The token signature is valid but its expiry has passed."""


class MalformedCredential(CredentialError):
    """The token cannot be parsed or its signature does not verify."""


class InvalidCredential(CredentialError):
    """The token parsed and verified but its claims are unacceptable."""


# ── Application errors ────────────────────────────────────────────────────────

class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors
        self.headers = headers
        super().__init__(self.message)


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_message = "Unauthorized access"

    def __init__(self, message: Optional[str] = None, errors: Any = None) -> None:
        super().__init__(message, errors, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "Access forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Resource already exists"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class ValidationFailedError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class StoreUnavailable(AppError):
    """The document store could not be reached or rejected the request."""

    code = "STORE_UNAVAILABLE"
    default_message = "Internal server error"


class InternalError(AppError):
    pass
