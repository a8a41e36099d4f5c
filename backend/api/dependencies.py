"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. The session state machine only sees the credential store,
profile directory and scheduler interfaces; this file picks the concrete
implementations.
"""

import logging
from typing import TYPE_CHECKING

from shared.config import Settings, get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import ICredentialStore, IProfileDirectory, IScheduler
    from modules.auth.registry import TerminalSessionRegistry
    from modules.auth.service import SessionService
    from modules.auth.tokens import TokenValidator

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings
        self._profiles: "IProfileDirectory | None" = None
        self._credentials: "ICredentialStore | None" = None
        self._scheduler: "IScheduler | None" = None
        self._token_validator: "TokenValidator | None" = None
        self._terminals: "TerminalSessionRegistry | None" = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def profiles(self) -> "IProfileDirectory":
        """Get the profile directory instance."""
        if self._profiles is None:
            settings = self.settings
            if settings.supabase_url and settings.supabase_service_role_key:
                from modules.auth.profiles import ProfileRepository
                from shared.database import get_supabase_client
                self._profiles = ProfileRepository(get_supabase_client())
            else:
                from modules.auth.profiles import InMemoryProfileDirectory
                logger.warning("Supabase service role not configured, using an empty profile directory")
                self._profiles = InMemoryProfileDirectory()
        return self._profiles

    @property
    def credentials(self) -> "ICredentialStore":
        """Get the credential store instance."""
        if self._credentials is None:
            from modules.auth.credentials import SupabaseCredentialStore
            self._credentials = SupabaseCredentialStore(self.profiles, settings=self.settings)
        return self._credentials

    @property
    def scheduler(self) -> "IScheduler":
        """Get the scheduler used for PIN lockout resets."""
        if self._scheduler is None:
            from modules.auth.scheduler import AsyncioScheduler
            self._scheduler = AsyncioScheduler()
        return self._scheduler

    @property
    def token_validator(self) -> "TokenValidator":
        """Get the Supabase token validator instance."""
        if self._token_validator is None:
            from modules.auth.tokens import TokenValidator
            self._token_validator = TokenValidator(self.settings)
        return self._token_validator

    def create_session(self) -> "SessionService":
        """Create a session for a newly seen terminal."""
        from modules.auth.service import SessionService
        return SessionService(
            credentials=self.credentials,
            profiles=self.profiles,
            scheduler=self.scheduler,
            settings=self.settings,
        )

    @property
    def terminals(self) -> "TerminalSessionRegistry":
        """Get the terminal session registry instance."""
        if self._terminals is None:
            from modules.auth.registry import TerminalSessionRegistry
            self._terminals = TerminalSessionRegistry(self.create_session)
        return self._terminals

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        Open terminal sessions are closed first.
        """
        if self._terminals is not None:
            self._terminals.close_all()
        self._profiles = None
        self._credentials = None
        self._scheduler = None
        self._token_validator = None
        self._terminals = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    if _container is not None:
        _container.reset()
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_terminal_registry() -> "TerminalSessionRegistry":
    """FastAPI dependency for the terminal session registry."""
    return get_container().terminals


def get_profile_directory() -> "IProfileDirectory":
    """FastAPI dependency for the profile directory."""
    return get_container().profiles


def get_token_validator() -> "TokenValidator":
    """FastAPI dependency for the token validator."""
    return get_container().token_validator
