"""
Authentication module exceptions.

These exceptions signal protocol errors (calling an operation in the wrong
state, a malformed token, a missing permission). A user typing the wrong
password or PIN is not an exception: that outcome is an AuthResult.
API routes catch these and return appropriate HTTP responses.
"""

from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


class InvalidTokenError(AuthenticationError):
    """Raised when a JWT token is invalid or malformed."""

    def __init__(self, message: str = "Invalid authentication token"):
        super().__init__(message, code="INVALID_TOKEN")


class ExpiredTokenError(AuthenticationError):
    """Raised when a JWT token has expired."""

    def __init__(self, message: str = "Authentication token has expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class MissingTokenError(AuthenticationError):
    """Raised when no authentication token is provided."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="MISSING_TOKEN")


class SessionNotAuthenticatedError(AuthenticationError):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "No user is signed in on this terminal"):
        super().__init__(message, code="NOT_AUTHENTICATED")


class SessionLockedError(AuthenticationError):
    """Raised when the terminal is locked and must be unlocked first."""

    status_code = 423

    def __init__(self, user_id: str):
        super().__init__(
            "Terminal is locked",
            code="SESSION_LOCKED",
            details={"user_id": user_id},
        )


class InvalidTerminalTokenError(AuthenticationError):
    """Raised when a request acts as a terminal's user without its terminal token."""

    def __init__(self, message: str = "Terminal token is missing or does not match this terminal"):
        super().__init__(message, code="INVALID_TERMINAL_TOKEN")


class MissingTerminalError(AuthenticationError):
    """Raised when a request does not identify its terminal."""

    def __init__(self, header: str):
        super().__init__(
            f"Missing terminal header: {header}",
            code="MISSING_TERMINAL",
            details={"header": header},
        )


class NoProfileSelectedError(ConflictError):
    """Raised when a PIN or manager password arrives with no profile selected."""

    def __init__(self, message: str = "No quick-access profile is selected"):
        super().__init__(message, code="NO_PROFILE_SELECTED")


class UserNotFoundError(NotFoundError):
    """Raised when a profile doesn't exist in the directory."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User not found: {user_id}",
            code="USER_NOT_FOUND",
            details={"user_id": user_id},
        )


class InvalidProfileError(ValidationError):
    """Raised when a profile row from the directory fails validation."""

    def __init__(self, profile_id: str, reason: str):
        super().__init__(
            f"Invalid profile {profile_id}: {reason}",
            code="INVALID_PROFILE",
            details={"profile_id": profile_id, "reason": reason},
        )


class InsufficientPermissionsError(AuthorizationError):
    """Raised when the current role lacks a capability."""

    def __init__(self, capability: str, role: str):
        super().__init__(
            f"Insufficient permissions. Required: {capability}, role: {role}",
            code="INSUFFICIENT_PERMISSIONS",
            details={"capability": capability, "role": role},
        )
