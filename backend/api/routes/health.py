"""
Health check endpoints.

/health answers as long as the process is up. /ready also reports whether
staff can actually sign in.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from modules.auth.registry import TerminalSessionRegistry
from shared.config import get_settings

from ..dependencies import get_terminal_registry

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    supabase: str
    token_validation: str
    active_terminals: int


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Returns 200 if the API is running."""
    return HealthResponse(status="healthy", version=get_settings().app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    terminals: TerminalSessionRegistry = Depends(get_terminal_registry),
) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Without Supabase every sign-in attempt fails with SUPABASE_NOT_CONFIGURED,
    so the API reports itself degraded. Restoring sessions from a browser
    token also needs the JWT secret.
    """
    settings = get_settings()
    supabase_ready = settings.supabase_configured
    return ReadinessResponse(
        status="ready" if supabase_ready else "degraded",
        supabase="configured" if supabase_ready else "not_configured",
        token_validation="configured" if settings.supabase_jwt_secret else "not_configured",
        active_terminals=len(terminals),
    )
