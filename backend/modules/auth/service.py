"""
Terminal session service implementation.

SessionService is the authentication state machine of one shared terminal:

    Unauthenticated --login / quick access--> Authenticated(user)
    Authenticated(user) --lock_screen--> Locked(user)
    Locked(user) --unlock / quick access--> Authenticated(same or other user)
    any --logout--> Unauthenticated

Quick access runs a small sub-flow (select profile, then PIN or manager
password) with a PIN attempt limit. Every login surface binds to this one
service and only differs in when it is shown.
"""

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Optional

from shared.config import Settings, get_settings

from .exceptions import NoProfileSelectedError, SessionNotAuthenticatedError
from .interfaces import (
    ICredentialStore,
    IProfileDirectory,
    IScheduler,
    ScheduledTask,
    SessionListener,
)
from .models import (
    AuthError,
    AuthErrorType,
    AuthResult,
    ProfileGroups,
    QuickAccessStep,
    SessionSnapshot,
    SessionState,
    UserProfile,
)
from .profiles import group_profiles_by_role
from .scheduler import AsyncioScheduler

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

INVALID_EMAIL_MESSAGE = "Please enter a valid email address"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again."
SUPERSEDED_MESSAGE = "Request was superseded by a newer action."
NO_ACTIVE_SESSION_MESSAGE = "No active user session. Please log in again."
USER_NOT_FOUND_MESSAGE = "User profile not found."
MANAGER_PIN_MESSAGE = "Managers sign in with their password, not a PIN."


def is_valid_email(email: str) -> bool:
    """Check the shape of an email address (no lookup)."""
    return bool(EMAIL_PATTERN.match(email or ""))


def is_valid_password(password: str, min_length: int = 6) -> bool:
    """Check a password meets the minimum length."""
    return len(password or "") >= min_length


def _superseded() -> AuthResult:
    return AuthResult.fail(AuthErrorType.UNKNOWN_ERROR, SUPERSEDED_MESSAGE)


class SessionService:
    """
    Authentication state machine for a single terminal.

    The service is the only writer of session state. Readers (login
    surfaces, API routes) either call snapshot() or subscribe() to be
    told about every transition.

    Collaborator calls run as tasks owned by the session. Selecting another
    profile, logging out or closing the session cancels them, and their
    outcome is never applied to the session.
    """

    def __init__(
        self,
        credentials: ICredentialStore,
        profiles: IProfileDirectory,
        scheduler: Optional[IScheduler] = None,
        settings: Optional[Settings] = None,
    ):
        self._credentials = credentials
        self._profiles = profiles
        self._scheduler = scheduler or AsyncioScheduler()
        self._settings = settings or get_settings()

        self._current_user: Optional[UserProfile] = None
        self._is_locked = False

        # Quick access sub-flow
        self._step = QuickAccessStep.SELECT_USER
        self._selected_user: Optional[UserProfile] = None
        self._pin_attempts = 0
        self._error: Optional[AuthError] = None

        self._listeners: list[SessionListener] = []
        self._lockout_reset: Optional[ScheduledTask] = None
        self._inflight: set[asyncio.Future] = set()
        self._epoch = 0

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        if self._is_locked:
            return SessionState.LOCKED
        if self._current_user is not None:
            return SessionState.AUTHENTICATED
        return SessionState.UNAUTHENTICATED

    @property
    def current_user(self) -> Optional[UserProfile]:
        return self._current_user

    @property
    def is_locked(self) -> bool:
        return self._is_locked

    @property
    def selected_user(self) -> Optional[UserProfile]:
        return self._selected_user

    @property
    def pin_attempts(self) -> int:
        return self._pin_attempts

    @property
    def error(self) -> Optional[AuthError]:
        return self._error

    @property
    def max_pin_attempts(self) -> int:
        return self._settings.max_pin_attempts

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            current_user=self._current_user,
            is_locked=self._is_locked,
            step=self._step,
            selected_user=self._selected_user,
            pin_attempts=self._pin_attempts,
            error=self._error,
        )

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener called with a snapshot after every transition.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # -------------------------------------------------------------------------
    # Standard login
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthResult:
        """
        Email/password login.

        Malformed input is rejected locally, without contacting the
        credential store.
        """
        self._error = None

        if not is_valid_email(email):
            return self._reject(AuthErrorType.INVALID_CREDENTIALS, INVALID_EMAIL_MESSAGE)

        min_length = self._settings.min_password_length
        if not is_valid_password(password, min_length):
            return self._reject(
                AuthErrorType.INVALID_CREDENTIALS,
                f"Password must be at least {min_length} characters",
            )

        result = await self._call("email login", self._credentials.verify_email_password, email, password)
        if result is None:
            return _superseded()
        return self._apply(result)

    async def request_password_reset(self, email: str) -> AuthResult:
        """Ask the credential store to send a reset link."""
        self._error = None

        if not is_valid_email(email):
            return self._reject(AuthErrorType.INVALID_CREDENTIALS, INVALID_EMAIL_MESSAGE)

        result = await self._call("password reset", self._credentials.request_password_reset, email)
        if result is None:
            return _superseded()
        if not result.success:
            self._error = result.error
            self._notify()
        return result

    async def restore(self, user_id: str) -> AuthResult:
        """Resume a session for a user whose Supabase token was already validated."""
        result = await self._call("session restore", self._lookup_profile, user_id)
        if result is None:
            return _superseded()
        return self._apply(result)

    async def _lookup_profile(self, user_id: str) -> AuthResult:
        profile = await self._profiles.get_profile(user_id)
        if profile is None:
            return AuthResult.fail(AuthErrorType.USER_NOT_FOUND, USER_NOT_FOUND_MESSAGE)
        return AuthResult.ok(profile)

    # -------------------------------------------------------------------------
    # Quick access
    # -------------------------------------------------------------------------

    def select_user_for_quick_access(self, profile: UserProfile) -> SessionSnapshot:
        """
        Pick a profile from the quick-access grid.

        Managers go to password entry, everyone else to PIN entry. Any
        in-flight verification or pending lockout reset from the previous
        selection is discarded.
        """
        self._supersede()
        step = (
            QuickAccessStep.MANAGER_PASSWORD
            if profile.is_manager
            else QuickAccessStep.PIN_ENTRY
        )
        self._begin_selection(profile, step)
        logger.debug(f"Quick access: selected {profile.id} ({profile.role.value}), step={step.value}")
        self._notify()
        return self.snapshot()

    def cancel_quick_access(self) -> SessionSnapshot:
        """Go back to the profile grid."""
        self._supersede()
        self._reset_quick_access()
        self._notify()
        return self.snapshot()

    async def submit_pin(self, pin: str, profile: Optional[UserProfile] = None) -> AuthResult:
        """
        Quick-access PIN login for the selected profile.

        The attempt counter is incremented before anything else. The attempt
        that reaches the limit is refused without contacting the credential
        store, and the flow returns to profile selection after a delay.

        A manager selection is at the password step and is refused without
        contacting the credential store or counting an attempt.
        """
        if profile is not None and (
            self._selected_user is None or self._selected_user.id != profile.id
        ):
            self.select_user_for_quick_access(profile)

        if self._selected_user is None:
            raise NoProfileSelectedError()

        if self._step is not QuickAccessStep.PIN_ENTRY:
            logger.warning(f"PIN submitted for {self._selected_user.id} at step {self._step.value}")
            return self._reject(AuthErrorType.INVALID_ROLE, MANAGER_PIN_MESSAGE)

        return await self._submit_pin(self._selected_user, pin)

    async def submit_manager_password(
        self, password: str, profile: Optional[UserProfile] = None
    ) -> AuthResult:
        """
        Quick-access password login for a manager.

        There is no attempt limit on this path.
        """
        if profile is not None and (
            self._selected_user is None or self._selected_user.id != profile.id
        ):
            self.select_user_for_quick_access(profile)

        if self._selected_user is None:
            raise NoProfileSelectedError()

        self._error = None
        result = await self._call(
            "manager login",
            self._credentials.verify_manager_password,
            self._selected_user.id,
            password,
        )
        if result is None:
            return _superseded()
        return self._apply(result)

    async def _submit_pin(self, profile: UserProfile, pin: str) -> AuthResult:
        max_attempts = self._settings.max_pin_attempts

        self._error = None
        self._pin_attempts += 1
        attempts = self._pin_attempts

        if attempts >= max_attempts:
            logger.warning(f"PIN attempts exhausted for {profile.id} after {attempts} attempts")
            self._error = AuthError(
                type=AuthErrorType.INVALID_PIN,
                message=(
                    f"Maximum PIN attempts reached ({max_attempts}). "
                    "Please try again later or use standard login."
                ),
            )
            self._schedule_lockout_reset()
            self._notify()
            return AuthResult(success=False, error=self._error)

        result = await self._call("PIN login", self._credentials.verify_pin, profile.id, pin)
        if result is None:
            return _superseded()

        if not result.success and result.error is not None:
            result = AuthResult(
                success=False,
                error=result.error.with_suffix(f" (Attempt {attempts}/{max_attempts})"),
            )
        return self._apply(result)

    # -------------------------------------------------------------------------
    # Lock / unlock
    # -------------------------------------------------------------------------

    def lock_screen(self) -> SessionSnapshot:
        """
        Lock the terminal for the current user.

        The current user is kept. Unlocking with the same user's PIN resumes
        the session; quick access with another profile switches user.

        Raises:
            SessionNotAuthenticatedError: If nobody is signed in
        """
        if self._current_user is None:
            raise SessionNotAuthenticatedError("Cannot lock a terminal with no signed-in user")

        self._supersede()
        self._is_locked = True
        self._reset_quick_access()
        logger.info(f"Terminal locked by {self._current_user.id}")
        self._notify()
        return self.snapshot()

    async def unlock_with_pin(self, pin: str) -> AuthResult:
        """
        PIN login bound to the current user, with the same attempt limit.

        A locked manager unlocks through quick access with their password.
        """
        user = self._current_user
        if user is None:
            return self._reject(AuthErrorType.USER_NOT_FOUND, NO_ACTIVE_SESSION_MESSAGE)
        if user.is_manager:
            return self._reject(AuthErrorType.INVALID_ROLE, MANAGER_PIN_MESSAGE)

        if self._selected_user is None or self._selected_user.id != user.id:
            self._supersede()
            self._begin_selection(user, QuickAccessStep.PIN_ENTRY)

        return await self._submit_pin(user, pin)

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    async def list_profiles(self) -> list[UserProfile]:
        return await self._profiles.list_profiles()

    async def profile_groups(self) -> ProfileGroups:
        return group_profiles_by_role(await self._profiles.list_profiles())

    async def refresh_current_user(self) -> Optional[UserProfile]:
        """Re-read the signed-in user's profile (name, image, role)."""
        if self._current_user is None:
            return None

        profile = await self._profiles.get_profile(self._current_user.id)
        if profile is not None:
            self._current_user = profile
            self._notify()
        return self._current_user

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def logout(self) -> SessionSnapshot:
        """Sign the current user out and unlock the terminal."""
        self._supersede()
        if self._current_user is not None:
            logger.info(f"User {self._current_user.id} signed out")
        self._current_user = None
        self._is_locked = False
        self._reset_quick_access()
        self._notify()
        return self.snapshot()

    def close(self) -> None:
        """Cancel pending timers and in-flight calls and drop all listeners."""
        self._supersede()
        self._listeners.clear()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _call(
        self,
        action: str,
        fn: Callable[..., Awaitable[AuthResult]],
        *args: Any,
    ) -> Optional[AuthResult]:
        """
        Run a collaborator call as a task owned by this session.

        Returns:
            The collaborator's result, an UNKNOWN_ERROR result if it raised,
            or None if the call was superseded while in flight
        """
        epoch = self._epoch
        task: Optional[asyncio.Future] = None
        try:
            task = asyncio.ensure_future(fn(*args))
            self._inflight.add(task)
            result = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            logger.debug(f"{action} superseded by a newer action")
            return None
        except Exception:
            logger.exception(f"Unexpected error during {action}")
            result = AuthResult.fail(AuthErrorType.UNKNOWN_ERROR, UNEXPECTED_ERROR_MESSAGE)
        finally:
            if task is not None:
                self._inflight.discard(task)

        if epoch != self._epoch:
            logger.debug(f"Discarding {action} result from a superseded interaction")
            return None
        return result

    def _apply(self, result: AuthResult) -> AuthResult:
        """Apply a verification outcome to the session."""
        if result.success:
            if result.user is None:
                return self._reject(AuthErrorType.USER_NOT_FOUND, USER_NOT_FOUND_MESSAGE)
            self._authenticate(result.user)
            return result

        self._error = result.error or AuthError(
            type=AuthErrorType.UNKNOWN_ERROR, message=UNEXPECTED_ERROR_MESSAGE
        )
        self._notify()
        return AuthResult(success=False, error=self._error)

    def _authenticate(self, user: UserProfile) -> None:
        previous = self._current_user
        self._cancel_lockout_reset()
        self._current_user = user
        self._is_locked = False
        self._reset_quick_access()

        if previous is not None and previous.id != user.id:
            logger.info(f"Switched user from {previous.id} to {user.id}")
        else:
            logger.info(f"User {user.id} signed in")
        self._notify()

    def _reject(self, error_type: AuthErrorType, message: str) -> AuthResult:
        self._error = AuthError(type=error_type, message=message)
        self._notify()
        return AuthResult(success=False, error=self._error)

    def _begin_selection(self, profile: UserProfile, step: QuickAccessStep) -> None:
        self._selected_user = profile
        self._step = step
        self._pin_attempts = 0
        self._error = None

    def _reset_quick_access(self) -> None:
        self._selected_user = None
        self._step = QuickAccessStep.SELECT_USER
        self._pin_attempts = 0
        self._error = None

    def _supersede(self) -> None:
        """Invalidate the current interaction: pending timer and in-flight calls."""
        self._epoch += 1
        self._cancel_lockout_reset()
        for task in list(self._inflight):
            task.cancel()

    def _schedule_lockout_reset(self) -> None:
        self._cancel_lockout_reset()
        delay = self._settings.pin_lockout_reset_seconds
        logger.debug(f"Returning to profile selection in {delay}s")
        self._lockout_reset = self._scheduler.call_later(delay, self._on_lockout_reset)

    def _cancel_lockout_reset(self) -> None:
        if self._lockout_reset is not None:
            self._lockout_reset.cancel()
            self._lockout_reset = None

    def _on_lockout_reset(self) -> None:
        self._lockout_reset = None
        self._reset_quick_access()
        logger.debug("PIN lockout elapsed, back to profile selection")
        self._notify()
