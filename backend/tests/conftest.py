"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

from datetime import datetime, timezone, timedelta
from typing import Callable, Optional

import jwt  # PyJWT
import pytest

from api.dependencies import reset_container
from modules.auth.credentials import InMemoryCredentialStore
from modules.auth.models import StaffRole, UserProfile
from modules.auth.profiles import InMemoryProfileDirectory
from modules.auth.service import SessionService
from shared.config import Settings
from shared.database import reset_client_cache


# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"


class ManualTask:
    """Scheduled callback on a ManualScheduler."""

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """
    Scheduler driven by a fake clock.

    Callbacks only run when a test calls advance().
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.tasks: list[ManualTask] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTask:
        task = ManualTask(self.now + delay, callback)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> list[ManualTask]:
        return [task for task in self.tasks if not task.cancelled()]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [task for task in self.pending if task.when <= self.now]
        for task in due:
            self.tasks.remove(task)
            task.callback()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the service container and database client before and after each test."""
    reset_container()
    reset_client_cache()
    yield
    reset_container()
    reset_client_cache()


@pytest.fixture
def settings() -> Settings:
    """Settings with the standard staff auth policy and a test JWT secret."""
    return Settings(
        supabase_url="",
        supabase_anon_key="",
        supabase_service_role_key="",
        supabase_jwt_secret=TEST_JWT_SECRET,
        max_pin_attempts=3,
        pin_lockout_reset_seconds=3.0,
        min_password_length=6,
    )


@pytest.fixture
def supabase_settings() -> Settings:
    """Settings with Supabase fully configured."""
    return Settings(
        supabase_url="https://test.supabase.co",
        supabase_anon_key="test-anon-key",
        supabase_service_role_key="test-service-key",
        supabase_jwt_secret=TEST_JWT_SECRET,
        app_url="https://garage.test",
    )


@pytest.fixture
def manager() -> UserProfile:
    return UserProfile(
        id="mgr-1",
        full_name="Alice Manager",
        role=StaffRole.MANAGER,
        email="alice@garage.test",
    )


@pytest.fixture
def technician() -> UserProfile:
    return UserProfile(
        id="tech-1",
        full_name="Bob Technician",
        role=StaffRole.TECHNICIAN,
        email="bob@garage.test",
        avatar_url="https://cdn.garage.test/bob.png",
    )


@pytest.fixture
def front_desk() -> UserProfile:
    return UserProfile(
        id="desk-1",
        full_name="Carol Frontdesk",
        role=StaffRole.FRONT_DESK,
        email="carol@garage.test",
    )


@pytest.fixture
def directory(manager, technician, front_desk) -> InMemoryProfileDirectory:
    """Profile directory with one profile per role."""
    return InMemoryProfileDirectory([manager, technician, front_desk])


@pytest.fixture
def credentials(directory, manager, technician, front_desk) -> InMemoryCredentialStore:
    """
    Credential store with known passwords and PINs.

    Passwords: alice/manager-pass, bob/tech-pass1, carol/desk-pass1
    PINs: Bob 1234, Carol 5678 (Alice has none)
    """
    store = InMemoryCredentialStore(directory)
    store.set_password(manager.email, "manager-pass")
    store.set_password(technician.email, "tech-pass1")
    store.set_password(front_desk.email, "desk-pass1")
    store.set_pin(technician.id, "1234")
    store.set_pin(front_desk.id, "5678")
    return store


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def session(credentials, directory, scheduler, settings) -> SessionService:
    """A terminal session over the in-memory stores and a manual clock."""
    return SessionService(
        credentials=credentials,
        profiles=directory,
        scheduler=scheduler,
        settings=settings,
    )


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Factory for signed Supabase-style access tokens."""

    def create_test_token(
        user_id: str = "tech-1",
        email: Optional[str] = "bob@garage.test",
        expired: bool = False,
        secret: str = TEST_JWT_SECRET,
        audience: str = "authenticated",
    ) -> str:
        now = datetime.now(timezone.utc)
        exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

        payload = {
            "sub": user_id,
            "email_confirmed_at": now.isoformat(),
            "aud": audience,
            "role": "authenticated",
            "session_id": "sess-counter-1",
            "exp": int(exp.timestamp()),
            "iat": int(now.timestamp()),
        }
        if email is not None:
            payload["email"] = email
        return jwt.encode(payload, secret, algorithm="HS256")

    return create_test_token
