"""
Authentication exceptions for the time capsule auth service.

Every failure a credential flow can report derives from AuthServiceError.
The HTTP boundary maps the five families below to status codes.
"""

from typing import Any


class AuthServiceError(Exception):
    """Base exception for all authentication errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationFailure(AuthServiceError):
    """Malformed input. Raised before any side effect occurs."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message, {"errors": errors} if errors else None)
        self.errors = errors or []


class Conflict(AuthServiceError):
    """The email address already has an account."""


class Unauthorized(AuthServiceError):
    """Wrong secret, bad code or token, or a role that may not log in yet."""


class AccountNotApproved(Unauthorized):
    """Correct password, but the role still awaits approval."""


class NotFound(AuthServiceError):
    """The targeted account does not exist and the flow may say so."""


class Unavailable(AuthServiceError):
    """A dependency could not be reached or timed out."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        backend: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, kwargs)
        self.operation = operation
        self.backend = backend


class StoreUnavailable(Unavailable):
    """The one-time code store failed."""


class AccountStoreUnavailable(Unavailable):
    """The account database failed."""


class MailDeliveryError(Unavailable):
    """The email dispatcher could not deliver a code."""


class TokenSigningError(Unavailable):
    """A token could not be signed."""


class HashingFailure(AuthServiceError):
    """The password hasher failed internally."""


class MalformedHash(AuthServiceError):
    """A stored credential hash is not in a recognised encoded form."""
