"""
Authentication module.

Handles staff sign-in on shared terminals: email/password login, quick
access by PIN or manager password, screen lock, and role capabilities.

Public API:
- ISessionService: Interface for a terminal's session state machine
- SessionService: The state machine itself
- ICredentialStore / IProfileDirectory: Collaborators it depends on
- UserProfile, StaffRole, AuthResult, AuthError: Core models
- Capability: Role-gated actions
- Auth exceptions: SessionLockedError, InsufficientPermissionsError, etc.
"""

from .interfaces import (
    ICredentialStore,
    IProfileDirectory,
    IScheduler,
    ISessionService,
)
from .models import (
    AuthError,
    AuthErrorType,
    AuthResult,
    QuickAccessStep,
    SessionSnapshot,
    SessionState,
    StaffRole,
    UserProfile,
)
from .exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
    SessionNotAuthenticatedError,
    SessionLockedError,
    NoProfileSelectedError,
    UserNotFoundError,
    InvalidProfileError,
    InsufficientPermissionsError,
)
from .permissions import Capability, has_capability
from .service import SessionService

__all__ = [
    # Interfaces
    "ICredentialStore",
    "IProfileDirectory",
    "IScheduler",
    "ISessionService",
    # Service
    "SessionService",
    # Models
    "AuthError",
    "AuthErrorType",
    "AuthResult",
    "QuickAccessStep",
    "SessionSnapshot",
    "SessionState",
    "StaffRole",
    "UserProfile",
    # Permissions
    "Capability",
    "has_capability",
    # Exceptions
    "InvalidTokenError",
    "ExpiredTokenError",
    "MissingTokenError",
    "SessionNotAuthenticatedError",
    "SessionLockedError",
    "NoProfileSelectedError",
    "UserNotFoundError",
    "InvalidProfileError",
    "InsufficientPermissionsError",
]
