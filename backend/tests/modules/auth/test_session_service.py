"""Tests for the terminal session state machine."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from modules.auth.exceptions import NoProfileSelectedError, SessionNotAuthenticatedError
from modules.auth.interfaces import ISessionService
from modules.auth.models import (
    AuthErrorType,
    AuthResult,
    QuickAccessStep,
    SessionState,
)
from modules.auth.service import (
    INVALID_EMAIL_MESSAGE,
    NO_ACTIVE_SESSION_MESSAGE,
    SUPERSEDED_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    SessionService,
    is_valid_email,
    is_valid_password,
)


@pytest.fixture
def mock_credentials():
    """Credential store whose calls can be counted."""
    return AsyncMock()


@pytest.fixture
def mocked_session(mock_credentials, directory, scheduler, settings) -> SessionService:
    return SessionService(
        credentials=mock_credentials,
        profiles=directory,
        scheduler=scheduler,
        settings=settings,
    )


class TestInputValidation:
    @pytest.mark.parametrize("email", ["bob@garage.test", "a@b.co", "first.last@shop.example.com"])
    def test_valid_emails(self, email):
        """Well-formed addresses should pass."""
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", ["", "bob", "bob@", "@garage.test", "bob@garage", "bo b@garage.test"])
    def test_invalid_emails(self, email):
        """Malformed addresses should be rejected."""
        assert not is_valid_email(email)

    def test_password_length(self):
        """Passwords shorter than the minimum should be rejected."""
        assert not is_valid_password("12345")
        assert is_valid_password("123456")
        assert not is_valid_password("123456", min_length=8)


class TestInitialState:
    def test_starts_unauthenticated(self, session):
        """A new terminal has nobody signed in."""
        snapshot = session.snapshot()
        assert snapshot.state == SessionState.UNAUTHENTICATED
        assert snapshot.current_user is None
        assert snapshot.is_locked is False
        assert snapshot.step == QuickAccessStep.SELECT_USER
        assert snapshot.pin_attempts == 0
        assert snapshot.error is None

    def test_implements_interface(self, session):
        """SessionService should satisfy ISessionService."""
        assert isinstance(session, ISessionService)


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, session, manager):
        """Correct credentials should sign the user in."""
        result = await session.login("alice@garage.test", "manager-pass")

        assert result.success is True
        assert result.user == manager
        assert session.state == SessionState.AUTHENTICATED
        assert session.current_user == manager

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, session):
        """Wrong password should leave the terminal signed out."""
        result = await session.login("alice@garage.test", "wrong-pass")

        assert result.success is False
        assert result.error.type == AuthErrorType.INVALID_CREDENTIALS
        assert result.error.message == "Invalid email or password. Please try again."
        assert session.state == SessionState.UNAUTHENTICATED
        assert session.error == result.error

    @pytest.mark.asyncio
    async def test_invalid_email_skips_store(self, mocked_session, mock_credentials):
        """A malformed email is rejected without contacting the store."""
        result = await mocked_session.login("not-an-email", "password123")

        assert result.success is False
        assert result.error.type == AuthErrorType.INVALID_CREDENTIALS
        assert result.error.message == INVALID_EMAIL_MESSAGE
        mock_credentials.verify_email_password.assert_not_called()

    @pytest.mark.asyncio
    async def test_short_password_skips_store(self, mocked_session, mock_credentials):
        """A short password is rejected without contacting the store."""
        result = await mocked_session.login("bob@garage.test", "abc")

        assert result.success is False
        assert result.error.message == "Password must be at least 6 characters"
        mock_credentials.verify_email_password.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_exception_becomes_unknown_error(self, mocked_session, mock_credentials):
        """An exception from the store should surface as UNKNOWN_ERROR."""
        mock_credentials.verify_email_password.side_effect = RuntimeError("connection reset")

        result = await mocked_session.login("bob@garage.test", "tech-pass1")

        assert result.success is False
        assert result.error.type == AuthErrorType.UNKNOWN_ERROR
        assert result.error.message == UNEXPECTED_ERROR_MESSAGE
        assert mocked_session.state == SessionState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_store_error_passed_through(self, mocked_session, mock_credentials):
        """Errors reported by the store should reach the caller unchanged."""
        mock_credentials.verify_email_password.return_value = AuthResult.fail(
            AuthErrorType.NETWORK_ERROR, "Network error. Please check your connection and try again."
        )

        result = await mocked_session.login("bob@garage.test", "tech-pass1")

        assert result.error.type == AuthErrorType.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_success_without_user_is_rejected(self, mocked_session, mock_credentials):
        """A success result with no profile must not sign anyone in."""
        mock_credentials.verify_email_password.return_value = AuthResult.ok()

        result = await mocked_session.login("bob@garage.test", "tech-pass1")

        assert result.success is False
        assert result.error.type == AuthErrorType.USER_NOT_FOUND
        assert mocked_session.current_user is None

    @pytest.mark.asyncio
    async def test_login_as_other_user_switches(self, session, manager, technician):
        """Signing in while someone is signed in switches the user."""
        await session.login("alice@garage.test", "manager-pass")
        await session.login("bob@garage.test", "tech-pass1")

        assert session.current_user == technician


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_reset_sends_request(self, session, credentials):
        """A valid email should be passed to the store."""
        result = await session.request_password_reset("bob@garage.test")

        assert result.success is True
        assert credentials.reset_requests == ["bob@garage.test"]

    @pytest.mark.asyncio
    async def test_reset_invalid_email(self, mocked_session, mock_credentials):
        """A malformed email is rejected without contacting the store."""
        result = await mocked_session.request_password_reset("nope")

        assert result.success is False
        assert result.error.message == INVALID_EMAIL_MESSAGE
        mock_credentials.request_password_reset.assert_not_called()

    @pytest.mark.asyncio
    async def test_reset_does_not_sign_in(self, session):
        """Requesting a reset never changes who is signed in."""
        await session.request_password_reset("bob@garage.test")
        assert session.state == SessionState.UNAUTHENTICATED


class TestRestore:
    @pytest.mark.asyncio
    async def test_restore_known_user(self, session, technician):
        """Restoring a known user signs them in."""
        result = await session.restore("tech-1")

        assert result.success is True
        assert session.current_user == technician

    @pytest.mark.asyncio
    async def test_restore_unknown_user(self, session):
        """Restoring a user without a profile fails."""
        result = await session.restore("ghost")

        assert result.success is False
        assert result.error.type == AuthErrorType.USER_NOT_FOUND
        assert session.current_user is None


class TestLockScreen:
    @pytest.mark.asyncio
    async def test_lock_keeps_user(self, session, technician):
        """Locking keeps the current user and marks the terminal locked."""
        await session.login("bob@garage.test", "tech-pass1")

        snapshot = session.lock_screen()

        assert snapshot.state == SessionState.LOCKED
        assert snapshot.is_locked is True
        assert snapshot.current_user == technician

    def test_lock_without_user_raises(self, session):
        """Locking an empty terminal is a protocol error."""
        with pytest.raises(SessionNotAuthenticatedError):
            session.lock_screen()

    @pytest.mark.asyncio
    async def test_unlock_with_correct_pin(self, session, technician):
        """The current user's PIN unlocks the terminal."""
        await session.login("bob@garage.test", "tech-pass1")
        session.lock_screen()

        result = await session.unlock_with_pin("1234")

        assert result.success is True
        assert session.state == SessionState.AUTHENTICATED
        assert session.current_user == technician
        assert session.is_locked is False

    @pytest.mark.asyncio
    async def test_unlock_with_wrong_pin(self, session):
        """A wrong PIN keeps the terminal locked and counts the attempt."""
        await session.login("bob@garage.test", "tech-pass1")
        session.lock_screen()

        result = await session.unlock_with_pin("0000")

        assert result.success is False
        assert result.error.message == "Invalid PIN. Please try again. (Attempt 1/3)"
        assert session.is_locked is True
        assert session.pin_attempts == 1

    @pytest.mark.asyncio
    async def test_unlock_without_user(self, session):
        """Unlock with nobody signed in reports a missing session."""
        result = await session.unlock_with_pin("1234")

        assert result.success is False
        assert result.error.type == AuthErrorType.USER_NOT_FOUND
        assert result.error.message == NO_ACTIVE_SESSION_MESSAGE

    @pytest.mark.asyncio
    async def test_quick_access_while_locked_switches_user(self, session, front_desk):
        """Another profile signing in on a locked terminal takes it over."""
        await session.login("bob@garage.test", "tech-pass1")
        session.lock_screen()

        session.select_user_for_quick_access(front_desk)
        result = await session.submit_pin("5678")

        assert result.success is True
        assert session.current_user == front_desk
        assert session.is_locked is False

    @pytest.mark.asyncio
    async def test_lock_resets_quick_access(self, session, technician, front_desk):
        """Locking drops any half-finished selection."""
        await session.login("bob@garage.test", "tech-pass1")
        session.select_user_for_quick_access(front_desk)

        snapshot = session.lock_screen()

        assert snapshot.step == QuickAccessStep.SELECT_USER
        assert snapshot.selected_user is None


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_clears_session(self, session):
        """Logout signs out and unlocks."""
        await session.login("bob@garage.test", "tech-pass1")
        session.lock_screen()

        snapshot = session.logout()

        assert snapshot.state == SessionState.UNAUTHENTICATED
        assert snapshot.current_user is None
        assert snapshot.is_locked is False

    def test_logout_when_signed_out(self, session):
        """Logout on an empty terminal is harmless."""
        assert session.logout().state == SessionState.UNAUTHENTICATED


class TestProfiles:
    @pytest.mark.asyncio
    async def test_list_profiles_sorted(self, session):
        """Profiles come back ordered by full name."""
        profiles = await session.list_profiles()
        assert [p.full_name for p in profiles] == [
            "Alice Manager",
            "Bob Technician",
            "Carol Frontdesk",
        ]

    @pytest.mark.asyncio
    async def test_profile_groups(self, session, manager, technician, front_desk):
        """Profiles are bucketed by role."""
        groups = await session.profile_groups()
        assert groups.managers == [manager]
        assert groups.technicians == [technician]
        assert groups.front_desk == [front_desk]

    @pytest.mark.asyncio
    async def test_refresh_current_user(self, session, directory, technician):
        """Refreshing picks up profile edits."""
        await session.login("bob@garage.test", "tech-pass1")
        directory.add(technician.model_copy(update={"full_name": "Robert Technician"}))

        user = await session.refresh_current_user()

        assert user.full_name == "Robert Technician"
        assert session.current_user.full_name == "Robert Technician"

    @pytest.mark.asyncio
    async def test_refresh_when_signed_out(self, session):
        """Refreshing with nobody signed in returns None."""
        assert await session.refresh_current_user() is None


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_listener_sees_transitions(self, session):
        """Listeners receive a snapshot after each transition."""
        states = []
        session.subscribe(lambda snapshot: states.append(snapshot.state))

        await session.login("bob@garage.test", "tech-pass1")
        session.lock_screen()
        session.logout()

        assert states == [
            SessionState.AUTHENTICATED,
            SessionState.LOCKED,
            SessionState.UNAUTHENTICATED,
        ]

    def test_unsubscribe(self, session):
        """An unsubscribed listener is not called again."""
        calls = []
        unsubscribe = session.subscribe(calls.append)

        session.logout()
        unsubscribe()
        session.logout()

        assert len(calls) == 1

    def test_close_drops_listeners(self, session):
        """close() removes every listener."""
        calls = []
        session.subscribe(calls.append)

        session.close()
        session.logout()

        assert calls == []


class TestSupersededCalls:
    @pytest.mark.asyncio
    async def test_reselect_cancels_inflight_pin(
        self, mocked_session, mock_credentials, technician, front_desk
    ):
        """A PIN check still running when another profile is picked is discarded."""
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_verify(user_id, pin):
            started.set()
            await release.wait()
            return AuthResult.ok(technician)

        mock_credentials.verify_pin.side_effect = slow_verify

        mocked_session.select_user_for_quick_access(technician)
        pending = asyncio.create_task(mocked_session.submit_pin("1234"))
        await started.wait()

        mocked_session.select_user_for_quick_access(front_desk)
        result = await pending

        assert result.success is False
        assert result.error.type == AuthErrorType.UNKNOWN_ERROR
        assert result.error.message == SUPERSEDED_MESSAGE
        assert mocked_session.current_user is None
        assert mocked_session.selected_user == front_desk
        assert mocked_session.error is None

    @pytest.mark.asyncio
    async def test_logout_cancels_inflight_login(self, mocked_session, mock_credentials, technician):
        """Logging out while a login is in flight leaves the terminal signed out."""
        started = asyncio.Event()

        async def slow_login(email, password):
            started.set()
            await asyncio.sleep(10)
            return AuthResult.ok(technician)

        mock_credentials.verify_email_password.side_effect = slow_login

        pending = asyncio.create_task(mocked_session.login("bob@garage.test", "tech-pass1"))
        await started.wait()
        mocked_session.logout()
        result = await pending

        assert result.success is False
        assert result.error.message == SUPERSEDED_MESSAGE
        assert mocked_session.current_user is None

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates(self, mocked_session, mock_credentials):
        """Cancelling the caller's own task is not swallowed."""
        started = asyncio.Event()

        async def slow_login(email, password):
            started.set()
            await asyncio.sleep(10)

        mock_credentials.verify_email_password.side_effect = slow_login

        pending = asyncio.create_task(mocked_session.login("bob@garage.test", "tech-pass1"))
        await started.wait()
        pending.cancel()

        with pytest.raises(asyncio.CancelledError):
            await pending
