"""
Centralized configuration for the iGarage360 backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., SUPABASE_*).
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "iGarage360 API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""

    # Frontend URL (password reset redirects land here)
    app_url: str = "http://localhost:3000"

    # Staff authentication policy
    max_pin_attempts: int = 3
    pin_lockout_reset_seconds: float = 3.0
    min_password_length: int = 6

    # Headers identifying a shared terminal and proving its sign-in
    terminal_header: str = "X-Terminal-ID"
    terminal_token_header: str = "X-Terminal-Token"

    @property
    def supabase_configured(self) -> bool:
        """Whether the Supabase URL and anon key are both set."""
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def password_reset_redirect(self) -> str:
        """Page the password reset email links back to."""
        return f"{self.app_url.rstrip('/')}/auth/reset-password"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
