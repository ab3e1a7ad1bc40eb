"""
Music Journal Backend - Custom Exception Hierarchy
===================================================

What:  Application-specific exceptions for each failure the core can report.
Why:   Services raise typed failures; the global handlers in main.py turn
       them into `{"error": message}` bodies with the right status code.
How:   Each exception carries a user-safe message and an optional context
       dict that is logged but never returned to the client.

Exception Hierarchy:
    MusicJournalError (base)
    ├── ValidationError              → 400 Bad Request
    │   └── WeakPasswordError        → 400 Bad Request
    ├── ConflictError                → 400 Bad Request (duplicate username)
    ├── AuthError
    │   ├── InvalidCredentialsError  → 400 Bad Request (login)
    │   └── NotAuthenticatedError    → 401 Unauthorized (no session)
    ├── NotFoundError                → 404 Not Found
    ├── RateLimitExceededError       → 429 Too Many Requests
    └── InternalError                → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class MusicJournalError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MusicJournalError):
    """Raised when client input is missing or malformed."""

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class WeakPasswordError(ValidationError):
    """Raised when a new password does not meet the strength rules."""

    def __init__(
        self,
        message: str = (
            "Password must be at least 8 characters and include uppercase, "
            "lowercase, number, and special character."
        ),
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field="password", context=context)


class ConflictError(MusicJournalError):
    """
    Raised when a unique resource already exists.

    HTTP 400 rather than 409: the registration form treats a taken username
    like any other input problem.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Username already taken",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthError(MusicJournalError):
    """Base for authentication failures."""

    status_code = 401

    def __init__(
        self,
        message: str = "Not authenticated",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidCredentialsError(AuthError):
    """
    Raised by login for an unknown username OR a wrong password.

    Both cases share one message so the response cannot be used to probe
    which usernames exist. The context (logged only) records which one it was.
    """

    status_code = 400

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid username or password", context=context)


class NotAuthenticatedError(AuthError):
    """Raised when a /user/* route is called without a valid session."""

    status_code = 401


class NotFoundError(MusicJournalError):
    """Raised when a requested resource does not exist."""

    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(MusicJournalError):
    """Raised when a client exceeds the per-IP request rate limit."""

    status_code = 429

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class InternalError(MusicJournalError):
    """
    Raised when the store or another dependency fails unexpectedly.

    Security Note:
        The message returned to the client is always generic. The SQL error,
        constraint name, etc. go into `context` and the server log only.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Server error. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
