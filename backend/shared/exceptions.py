"""
Base exception classes for the iGarage360 backend.

Domain modules subclass these. Each base carries the HTTP status the API
answers with when a route lets the error escape, so a new module error
only needs to pick the right base.

Wrong passwords and PINs are not errors here: they are reported as
AuthResult values by the auth module.
"""

from typing import Optional, Any


class GarageError(Exception):
    """
    Base exception for all iGarage360 errors.

    Attributes:
        message: Human readable description, safe to show staff.
        code: Stable machine readable code. Defaults to the class name.
        details: Extra context for logs and API clients.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(GarageError):
    """Request or stored data is malformed."""

    status_code = 400


class AuthenticationError(GarageError):
    """No usable identity: missing or bad token, or nobody signed in."""

    status_code = 401


class AuthorizationError(GarageError):
    """The signed-in role may not do this."""

    status_code = 403


class NotFoundError(GarageError):
    """A profile or other record does not exist."""

    status_code = 404


class ConflictError(GarageError):
    """The operation does not fit the terminal's current state."""

    status_code = 409


class ExternalServiceError(GarageError):
    """Supabase or another upstream service failed."""

    status_code = 502

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
