"""Custom exception classes for the MFA gateway.

Each exception carries the HTTP status code the Lambda surface answers
with and optional structured detail. Expected authentication outcomes
(pending challenge, rejected OTP, push not answered yet) are not
exceptions; they are returned as re-render outcomes.
"""

from __future__ import annotations

from typing import Any
from typing import Optional


class AppError(Exception):
    """Base exception for gateway errors.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code (default 500).
        detail: Optional additional context.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response body."""
        result: dict[str, Any] = {"error": self.message}
        if self.detail:
            result["detail"] = self.detail
        return result


class ValidationError(AppError):
    """Raised when request input is malformed.

    Use for bad request bodies, missing form fields, or an unparsable
    WebAuthn sign response.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        detail = f"Field: {field}" if field else None
        super().__init__(message, status_code=400, detail=detail)
        self.field = field


class AuthenticationError(AppError):
    """Raised when the caller has no primary authentication context."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401)


class ConfigurationError(AppError):
    """Raised when required configuration is missing."""

    def __init__(self, config_name: str):
        super().__init__(
            f"Missing required configuration: {config_name}",
            status_code=500,
        )
        self.config_name = config_name


class BackendError(AppError):
    """Raised when the authentication backend cannot be used.

    Covers transport failures, non-JSON or malformed bodies, server
    errors, and responses whose ``result.status`` is false. The attempt
    must not continue after one of these.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message, status_code=502, detail=detail)
        self.code = code


class SessionError(AppError):
    """Raised when an authentication attempt is unknown or expired."""

    def __init__(self, attempt_id: str):
        super().__init__(
            f"Authentication attempt not found: {attempt_id}",
            status_code=404,
        )
        self.attempt_id = attempt_id
