"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class StaffRole(str, Enum):
    """Staff roles. This is a closed set; profiles with any other role are rejected."""

    MANAGER = "Manager"
    TECHNICIAN = "Technician"
    FRONT_DESK = "Front Desk"


class UserProfile(BaseModel):
    """
    Staff profile as stored in the profile directory.

    Profiles are provisioned out-of-band and are never mutated by the
    auth module. Rows are validated into this model once, when they
    leave the directory.
    """

    id: str = Field(..., description="Profile ID (same as the Supabase user ID)")
    full_name: str = Field(..., description="Display name")
    role: StaffRole = Field(..., description="Staff role")
    email: Optional[str] = Field(None, description="Sign-in email address")
    first_name: Optional[str] = Field(None, description="First name")
    last_name: Optional[str] = Field(None, description="Last name")
    image: Optional[str] = Field(None, description="Profile image (URL or data URL)")
    avatar_url: Optional[str] = Field(None, description="Avatar URL")
    phone: Optional[str] = Field(None, description="Phone number")
    address: Optional[str] = Field(None, description="Postal address")
    created_at: Optional[datetime] = Field(None, description="Creation time")
    updated_at: Optional[datetime] = Field(None, description="Last update time")

    model_config = {"frozen": True}

    @property
    def display_image(self) -> Optional[str]:
        """The image to show for this profile, preferring the uploaded image."""
        return self.image or self.avatar_url

    @property
    def is_manager(self) -> bool:
        return self.role is StaffRole.MANAGER


class AuthErrorType(str, Enum):
    """Kinds of authentication failure."""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_PIN = "INVALID_PIN"
    PIN_NOT_FOUND = "PIN_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    INVALID_ROLE = "INVALID_ROLE"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    SUPABASE_NOT_CONFIGURED = "SUPABASE_NOT_CONFIGURED"


class AuthError(BaseModel):
    """A failed authentication outcome, shown to the user as-is."""

    type: AuthErrorType
    message: str

    model_config = {"frozen": True}

    def with_suffix(self, suffix: str) -> "AuthError":
        """Return a copy of this error with text appended to the message."""
        return AuthError(type=self.type, message=f"{self.message}{suffix}")


class AuthResult(BaseModel):
    """Outcome of every authentication operation."""

    success: bool
    user: Optional[UserProfile] = None
    error: Optional[AuthError] = None

    @classmethod
    def ok(cls, user: Optional[UserProfile] = None) -> "AuthResult":
        return cls(success=True, user=user)

    @classmethod
    def fail(cls, error_type: AuthErrorType, message: str) -> "AuthResult":
        return cls(success=False, error=AuthError(type=error_type, message=message))


class AlertTone(str, Enum):
    """How an error alert is styled."""

    DESTRUCTIVE = "destructive"
    WARNING = "warning"
    INFO = "info"


_ALERT_TONES = {
    AuthErrorType.INVALID_PIN: AlertTone.DESTRUCTIVE,
    AuthErrorType.INVALID_CREDENTIALS: AlertTone.DESTRUCTIVE,
    AuthErrorType.INVALID_ROLE: AlertTone.DESTRUCTIVE,
    AuthErrorType.PIN_NOT_FOUND: AlertTone.WARNING,
    AuthErrorType.USER_NOT_FOUND: AlertTone.WARNING,
    AuthErrorType.SUPABASE_NOT_CONFIGURED: AlertTone.WARNING,
    AuthErrorType.NETWORK_ERROR: AlertTone.INFO,
}


def alert_tone(error_type: AuthErrorType) -> AlertTone:
    """Pick the alert tone for an error type."""
    return _ALERT_TONES.get(error_type, AlertTone.DESTRUCTIVE)


class JWTPayload(BaseModel):
    """
    Decoded JWT token payload from Supabase.

    This matches the structure of Supabase Auth JWTs.
    """

    sub: str = Field(..., description="Subject (user ID)")
    email: Optional[str] = Field(None, description="User's email")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
    aud: str = Field(default="authenticated", description="Audience")
    role: str = Field(default="authenticated", description="Supabase role claim")
    email_confirmed_at: Optional[str] = Field(None, description="Email confirmation time")
    session_id: Optional[str] = Field(None, description="Supabase Auth session ID")

    # Supabase-specific claims
    app_metadata: dict = Field(default_factory=dict)
    user_metadata: dict = Field(default_factory=dict)


class SessionState(str, Enum):
    """Terminal session states."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    LOCKED = "locked"


class QuickAccessStep(str, Enum):
    """Where the quick-access flow currently is."""

    SELECT_USER = "select_user"
    PIN_ENTRY = "pin_entry"
    MANAGER_PASSWORD = "manager_password"


class SessionSnapshot(BaseModel):
    """Read-only view of a terminal session, broadcast after every transition."""

    state: SessionState
    current_user: Optional[UserProfile] = None
    is_locked: bool = False
    step: QuickAccessStep = QuickAccessStep.SELECT_USER
    selected_user: Optional[UserProfile] = None
    pin_attempts: int = 0
    error: Optional[AuthError] = None

    model_config = {"frozen": True}


class ProfileGroups(BaseModel):
    """Quick-access profile grid, bucketed by role."""

    managers: list[UserProfile] = Field(default_factory=list)
    technicians: list[UserProfile] = Field(default_factory=list)
    front_desk: list[UserProfile] = Field(default_factory=list)

    def non_empty(self) -> dict[StaffRole, list[UserProfile]]:
        """Sections to display, in grid order, skipping empty buckets."""
        sections = {
            StaffRole.MANAGER: self.managers,
            StaffRole.TECHNICIAN: self.technicians,
            StaffRole.FRONT_DESK: self.front_desk,
        }
        return {role: profiles for role, profiles in sections.items() if profiles}


class ProfileSection(BaseModel):
    """One section of the quick-access grid."""

    role: StaffRole
    profiles: list[UserProfile]


class SurfaceKind(str, Enum):
    """The three places a login form can appear."""

    FULL_PAGE = "full_page"
    SWITCH_USER_DIALOG = "switch_user_dialog"
    FLOATING_WIDGET = "floating_widget"


class SurfaceState(BaseModel):
    """What a login surface should currently render."""

    kind: SurfaceKind
    visible: bool
    open: bool
    dismissible: bool


# -----------------------------------------------------------------------------
# API request models
# -----------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Standard email/password login."""

    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class QuickAccessSelectRequest(BaseModel):
    """Pick a profile from the quick-access grid."""

    profile_id: str = Field(..., description="ID of the selected profile")


class PinRequest(BaseModel):
    """PIN entry for quick access or unlock."""

    pin: str = Field(..., description="4-digit PIN")


class ManagerPasswordRequest(BaseModel):
    """Password entry for manager quick access."""

    password: str = Field(..., description="Manager password")


class PasswordResetRequest(BaseModel):
    """Request a password reset link."""

    email: str = Field(..., description="Email address")


class SurfaceOpenChangeRequest(BaseModel):
    """A login surface asking to open or close."""

    open: bool = Field(..., description="Requested open state")
