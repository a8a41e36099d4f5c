"""
Credential store implementations.

Provides both in-memory (for testing) and Supabase-backed (for production)
implementations of ICredentialStore. Passwords are checked by Supabase
Auth; quick-access PINs live in the `user_pins` table.

supabase-py calls block, so they run in a worker thread to keep the event
loop serving other terminals.
"""

import asyncio
import hmac
import logging
from typing import Callable, Optional

import httpx
from supabase import AuthApiError, AuthRetryableError, Client

from shared.config import Settings, get_settings
from shared.database import get_supabase_auth_client, get_supabase_client

from .interfaces import IProfileDirectory
from .models import AuthErrorType, AuthResult

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."
NOT_CONFIGURED_MESSAGE = (
    "Authentication is not available. Please configure Supabase environment variables."
)
INVALID_LOGIN_MESSAGE = "Invalid email or password. Please try again."
INVALID_PIN_MESSAGE = "Invalid PIN. Please try again."
PIN_NOT_FOUND_MESSAGE = "PIN not found for this user."
USER_NOT_FOUND_MESSAGE = "User profile not found."
INVALID_ROLE_MESSAGE = "This login method is only for Managers."
INVALID_MANAGER_PASSWORD_MESSAGE = "Invalid password. Please try again."
RESET_FAILED_MESSAGE = "Failed to send reset link. Please try again."


def _network_error() -> AuthResult:
    return AuthResult.fail(AuthErrorType.NETWORK_ERROR, NETWORK_ERROR_MESSAGE)


class SupabaseCredentialStore:
    """
    Credential store backed by Supabase.

    Password checks use a fresh anon client per attempt and sign out
    straight away: the backend only needs to know the password is right,
    the terminal session itself is owned by SessionService.
    """

    def __init__(
        self,
        profiles: IProfileDirectory,
        db_factory: Callable[[], Client] = get_supabase_client,
        auth_client_factory: Callable[[], Client] = get_supabase_auth_client,
        settings: Optional[Settings] = None,
    ):
        self._profiles = profiles
        self._db_factory = db_factory
        self._auth_client_factory = auth_client_factory
        self._settings = settings or get_settings()

    def _not_configured(self) -> Optional[AuthResult]:
        if self._settings.supabase_configured:
            return None
        logger.warning("Supabase is not configured, rejecting authentication request")
        return AuthResult.fail(AuthErrorType.SUPABASE_NOT_CONFIGURED, NOT_CONFIGURED_MESSAGE)

    def _check_password(self, email: str, password: str) -> Optional[str]:
        """Sign in with Supabase Auth and return the user ID, or None if rejected."""
        client = self._auth_client_factory()
        try:
            response = client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthApiError as e:
            logger.debug(f"Supabase rejected sign-in: {e}")
            return None

        if response.user is None:
            return None

        client.auth.sign_out()
        return str(response.user.id)

    def _fetch_pin_rows(self, user_id: str) -> list[dict]:
        result = (
            self._db_factory()
            .table("user_pins")
            .select("pin")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        return result.data or []

    def _send_reset_email(self, email: str) -> None:
        self._auth_client_factory().auth.reset_password_for_email(
            email,
            {"redirect_to": self._settings.password_reset_redirect},
        )

    async def verify_email_password(self, email: str, password: str) -> AuthResult:
        if (result := self._not_configured()) is not None:
            return result

        try:
            user_id = await asyncio.to_thread(self._check_password, email, password)
            if user_id is None:
                return AuthResult.fail(AuthErrorType.INVALID_CREDENTIALS, INVALID_LOGIN_MESSAGE)

            profile = await self._profiles.get_profile(user_id)
        except (httpx.HTTPError, AuthRetryableError) as e:
            logger.warning(f"Network error during email login: {e}")
            return _network_error()

        if profile is None:
            return AuthResult.fail(AuthErrorType.USER_NOT_FOUND, USER_NOT_FOUND_MESSAGE)
        return AuthResult.ok(profile)

    async def verify_pin(self, user_id: str, pin: str) -> AuthResult:
        if (result := self._not_configured()) is not None:
            return result

        try:
            rows = await asyncio.to_thread(self._fetch_pin_rows, user_id)

            if not rows:
                return AuthResult.fail(AuthErrorType.PIN_NOT_FOUND, PIN_NOT_FOUND_MESSAGE)

            if not hmac.compare_digest(str(rows[0]["pin"]).encode(), pin.encode()):
                return AuthResult.fail(AuthErrorType.INVALID_PIN, INVALID_PIN_MESSAGE)

            profile = await self._profiles.get_profile(user_id)
        except httpx.HTTPError as e:
            logger.warning(f"Network error during PIN check for {user_id}: {e}")
            return _network_error()

        if profile is None:
            return AuthResult.fail(AuthErrorType.USER_NOT_FOUND, USER_NOT_FOUND_MESSAGE)
        return AuthResult.ok(profile)

    async def verify_manager_password(self, user_id: str, password: str) -> AuthResult:
        if (result := self._not_configured()) is not None:
            return result

        try:
            profile = await self._profiles.get_profile(user_id)
            if profile is None or not profile.email:
                return AuthResult.fail(AuthErrorType.USER_NOT_FOUND, USER_NOT_FOUND_MESSAGE)

            if not profile.is_manager:
                return AuthResult.fail(AuthErrorType.INVALID_ROLE, INVALID_ROLE_MESSAGE)

            if await asyncio.to_thread(self._check_password, profile.email, password) is None:
                return AuthResult.fail(
                    AuthErrorType.INVALID_CREDENTIALS, INVALID_MANAGER_PASSWORD_MESSAGE
                )
        except (httpx.HTTPError, AuthRetryableError) as e:
            logger.warning(f"Network error during manager login for {user_id}: {e}")
            return _network_error()

        return AuthResult.ok(profile)

    async def request_password_reset(self, email: str) -> AuthResult:
        if (result := self._not_configured()) is not None:
            return result

        try:
            await asyncio.to_thread(self._send_reset_email, email)
        except (httpx.HTTPError, AuthRetryableError) as e:
            logger.warning(f"Network error requesting password reset: {e}")
            return _network_error()
        except AuthApiError as e:
            logger.warning(f"Password reset request failed: {e}")
            return AuthResult.fail(AuthErrorType.UNKNOWN_ERROR, RESET_FAILED_MESSAGE)

        return AuthResult.ok()


class InMemoryCredentialStore:
    """
    Credential store with in-memory storage.

    For testing and development. Use SupabaseCredentialStore for production.
    """

    def __init__(self, profiles: IProfileDirectory):
        self._profiles = profiles
        self._passwords: dict[str, str] = {}
        self._pins: dict[str, str] = {}
        self.reset_requests: list[str] = []

    def set_password(self, email: str, password: str) -> None:
        self._passwords[email.lower()] = password

    def set_pin(self, user_id: str, pin: str) -> None:
        self._pins[user_id] = pin

    async def _find_by_email(self, email: str):
        for profile in await self._profiles.list_profiles():
            if profile.email and profile.email.lower() == email.lower():
                return profile
        return None

    async def verify_email_password(self, email: str, password: str) -> AuthResult:
        stored = self._passwords.get(email.lower())
        if stored is None or not hmac.compare_digest(stored.encode(), password.encode()):
            return AuthResult.fail(AuthErrorType.INVALID_CREDENTIALS, INVALID_LOGIN_MESSAGE)

        profile = await self._find_by_email(email)
        if profile is None:
            return AuthResult.fail(AuthErrorType.USER_NOT_FOUND, USER_NOT_FOUND_MESSAGE)
        return AuthResult.ok(profile)

    async def verify_pin(self, user_id: str, pin: str) -> AuthResult:
        stored = self._pins.get(user_id)
        if stored is None:
            return AuthResult.fail(AuthErrorType.PIN_NOT_FOUND, PIN_NOT_FOUND_MESSAGE)
        if not hmac.compare_digest(stored.encode(), pin.encode()):
            return AuthResult.fail(AuthErrorType.INVALID_PIN, INVALID_PIN_MESSAGE)

        profile = await self._profiles.get_profile(user_id)
        if profile is None:
            return AuthResult.fail(AuthErrorType.USER_NOT_FOUND, USER_NOT_FOUND_MESSAGE)
        return AuthResult.ok(profile)

    async def verify_manager_password(self, user_id: str, password: str) -> AuthResult:
        profile = await self._profiles.get_profile(user_id)
        if profile is None or not profile.email:
            return AuthResult.fail(AuthErrorType.USER_NOT_FOUND, USER_NOT_FOUND_MESSAGE)
        if not profile.is_manager:
            return AuthResult.fail(AuthErrorType.INVALID_ROLE, INVALID_ROLE_MESSAGE)

        stored = self._passwords.get(profile.email.lower())
        if stored is None or not hmac.compare_digest(stored.encode(), password.encode()):
            return AuthResult.fail(
                AuthErrorType.INVALID_CREDENTIALS, INVALID_MANAGER_PASSWORD_MESSAGE
            )
        return AuthResult.ok(profile)

    async def request_password_reset(self, email: str) -> AuthResult:
        self.reset_requests.append(email)
        return AuthResult.ok()
