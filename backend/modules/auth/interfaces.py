"""
Authentication module interfaces.

The session state machine depends on ICredentialStore, IProfileDirectory
and IScheduler, not on Supabase or asyncio directly. This enables testing
with mocks and a manual clock. Other modules and the API depend on
ISessionService.
"""

from typing import Callable, Optional, Protocol, runtime_checkable

from .models import (
    AuthResult,
    ProfileGroups,
    SessionSnapshot,
    UserProfile,
)


@runtime_checkable
class ICredentialStore(Protocol):
    """
    Interface for checking staff credentials.

    Every method returns an AuthResult. Wrong credentials are reported
    through AuthResult.error, never raised.
    """

    async def verify_email_password(self, email: str, password: str) -> AuthResult:
        """
        Check an email/password pair.

        Returns:
            AuthResult with the signed-in profile on success
        """
        ...

    async def verify_pin(self, user_id: str, pin: str) -> AuthResult:
        """
        Check a staff member's quick-access PIN.

        Returns:
            AuthResult with the profile on success; INVALID_PIN or
            PIN_NOT_FOUND on failure
        """
        ...

    async def verify_manager_password(self, user_id: str, password: str) -> AuthResult:
        """
        Check a manager's password for quick access.

        Returns:
            AuthResult with the profile on success; INVALID_ROLE if the
            profile is not a manager
        """
        ...

    async def request_password_reset(self, email: str) -> AuthResult:
        """
        Send a password reset link.

        The result must not reveal whether the address is registered.
        """
        ...


@runtime_checkable
class IProfileDirectory(Protocol):
    """Interface for reading staff profiles."""

    async def list_profiles(self) -> list[UserProfile]:
        """
        List every staff profile, ordered by full name.

        The roster is small, so there is no pagination.
        """
        ...

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """
        Get a profile by ID.

        Returns:
            UserProfile if found, None otherwise
        """
        ...


@runtime_checkable
class ScheduledTask(Protocol):
    """Handle to a delayed callback."""

    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


@runtime_checkable
class IScheduler(Protocol):
    """Interface for scheduling delayed callbacks."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """
        Run callback after delay seconds.

        Returns:
            A handle whose cancel() prevents the callback from running
        """
        ...


SessionListener = Callable[[SessionSnapshot], None]


@runtime_checkable
class ISessionService(Protocol):
    """
    Interface for a terminal's authentication session.

    This protocol is the single state machine every login surface binds to.
    """

    def snapshot(self) -> SessionSnapshot: ...

    def subscribe(self, listener: SessionListener) -> Callable[[], None]: ...

    async def login(self, email: str, password: str) -> AuthResult: ...

    def select_user_for_quick_access(self, profile: UserProfile) -> SessionSnapshot: ...

    def cancel_quick_access(self) -> SessionSnapshot: ...

    async def submit_pin(self, pin: str, profile: Optional[UserProfile] = None) -> AuthResult: ...

    async def submit_manager_password(
        self, password: str, profile: Optional[UserProfile] = None
    ) -> AuthResult: ...

    def lock_screen(self) -> SessionSnapshot: ...

    async def unlock_with_pin(self, pin: str) -> AuthResult: ...

    async def request_password_reset(self, email: str) -> AuthResult: ...

    async def restore(self, user_id: str) -> AuthResult: ...

    async def refresh_current_user(self) -> Optional[UserProfile]: ...

    async def list_profiles(self) -> list[UserProfile]: ...

    async def profile_groups(self) -> ProfileGroups: ...

    def logout(self) -> SessionSnapshot: ...

    def close(self) -> None: ...
