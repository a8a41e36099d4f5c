"""
Terminal session API endpoints.

Every endpoint acts on the session of the terminal named by the terminal
header. Credential outcomes (wrong password, wrong PIN, lockout) come back
as an AuthResult with status 200; only protocol errors use HTTP errors.
Successful sign-ins return a terminal token; logout, lock and capability
checks require it while someone is signed in.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.dependencies import get_profile_directory
from api.middleware.auth import (
    get_authorized_terminal,
    get_current_user,
    get_session,
    get_terminal,
    get_token_user,
)
from shared.models import AuthenticatedUser

from .exceptions import (
    InvalidProfileError,
    NoProfileSelectedError,
    SessionNotAuthenticatedError,
    UserNotFoundError,
)
from .interfaces import IProfileDirectory
from .models import (
    AuthResult,
    LoginRequest,
    ManagerPasswordRequest,
    PasswordResetRequest,
    PinRequest,
    ProfileSection,
    QuickAccessSelectRequest,
    SessionSnapshot,
    StaffRole,
    SurfaceKind,
    SurfaceOpenChangeRequest,
    SurfaceState,
    UserProfile,
)
from .permissions import Capability, capabilities_for
from .registry import TerminalSession
from .service import SessionService

router = APIRouter()


class CapabilitiesResponse(BaseModel):
    """What the signed-in role may do."""

    role: StaffRole
    capabilities: list[Capability]


class SessionAuthResult(AuthResult):
    """AuthResult plus the terminal token the caller now acts with."""

    terminal_token: Optional[str] = Field(
        None,
        description="Send back in the terminal token header; set only on success",
    )


def _with_token(result: AuthResult, terminal: TerminalSession) -> SessionAuthResult:
    return SessionAuthResult(
        success=result.success,
        user=result.user,
        error=result.error,
        terminal_token=terminal.token if result.success else None,
    )


@router.get("", response_model=SessionSnapshot)
async def get_session_snapshot(
    session: SessionService = Depends(get_session),
) -> SessionSnapshot:
    """Current state of this terminal's session."""
    return session.snapshot()


@router.post("/login", response_model=SessionAuthResult)
async def login(
    request: LoginRequest,
    terminal: TerminalSession = Depends(get_terminal),
) -> SessionAuthResult:
    """Standard email/password login."""
    result = await terminal.session.login(request.email, request.password)
    return _with_token(result, terminal)


@router.post("/restore", response_model=SessionAuthResult)
async def restore(
    user: AuthenticatedUser = Depends(get_token_user),
    terminal: TerminalSession = Depends(get_terminal),
) -> SessionAuthResult:
    """
    Resume a session from a Supabase access token.

    Used after a page reload when the browser still holds a valid token.
    """
    return _with_token(await terminal.session.restore(user.id), terminal)


@router.post("/logout", response_model=SessionSnapshot)
async def logout(
    terminal: TerminalSession = Depends(get_authorized_terminal),
) -> SessionSnapshot:
    return terminal.session.logout()


@router.post("/lock", response_model=SessionSnapshot)
async def lock(
    terminal: TerminalSession = Depends(get_authorized_terminal),
) -> SessionSnapshot:
    """
    Lock the terminal.

    The switch-user dialog and widget open and cannot be closed until
    someone signs in.
    """
    try:
        return terminal.session.lock_screen()
    except SessionNotAuthenticatedError as e:
        raise HTTPException(status_code=401, detail=e.message)


@router.post("/unlock", response_model=SessionAuthResult)
async def unlock(
    request: PinRequest,
    terminal: TerminalSession = Depends(get_terminal),
) -> SessionAuthResult:
    """Unlock with the current user's PIN."""
    return _with_token(await terminal.session.unlock_with_pin(request.pin), terminal)


@router.post("/password-reset", response_model=AuthResult)
async def request_password_reset(
    request: PasswordResetRequest,
    session: SessionService = Depends(get_session),
) -> AuthResult:
    return await session.request_password_reset(request.email)


# -----------------------------------------------------------------------------
# Quick access
# -----------------------------------------------------------------------------


@router.get("/profiles", response_model=list[ProfileSection])
async def list_profiles(
    session: SessionService = Depends(get_session),
) -> list[ProfileSection]:
    """
    Quick-access profile grid.

    Sections come in Managers, Technicians, Front Desk order; empty
    sections are left out.
    """
    try:
        groups = await session.profile_groups()
    except InvalidProfileError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return [
        ProfileSection(role=role, profiles=profiles)
        for role, profiles in groups.non_empty().items()
    ]


@router.post("/quick-access/select", response_model=SessionSnapshot)
async def select_profile(
    request: QuickAccessSelectRequest,
    session: SessionService = Depends(get_session),
    profiles: IProfileDirectory = Depends(get_profile_directory),
) -> SessionSnapshot:
    """Pick a profile; managers continue with a password, others with a PIN."""
    try:
        profile = await profiles.get_profile(request.profile_id)
        if profile is None:
            raise UserNotFoundError(request.profile_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidProfileError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return session.select_user_for_quick_access(profile)


@router.post("/quick-access/cancel", response_model=SessionSnapshot)
async def cancel_quick_access(
    session: SessionService = Depends(get_session),
) -> SessionSnapshot:
    return session.cancel_quick_access()


@router.post("/quick-access/pin", response_model=SessionAuthResult)
async def submit_pin(
    request: PinRequest,
    terminal: TerminalSession = Depends(get_terminal),
) -> SessionAuthResult:
    try:
        result = await terminal.session.submit_pin(request.pin)
    except NoProfileSelectedError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _with_token(result, terminal)


@router.post("/quick-access/manager-password", response_model=SessionAuthResult)
async def submit_manager_password(
    request: ManagerPasswordRequest,
    terminal: TerminalSession = Depends(get_terminal),
) -> SessionAuthResult:
    try:
        result = await terminal.session.submit_manager_password(request.password)
    except NoProfileSelectedError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _with_token(result, terminal)


# -----------------------------------------------------------------------------
# Login surfaces
# -----------------------------------------------------------------------------


@router.get("/surfaces/{kind}", response_model=SurfaceState)
async def get_surface(
    kind: SurfaceKind,
    terminal: TerminalSession = Depends(get_terminal),
) -> SurfaceState:
    return terminal.surfaces.get(kind).state()


@router.post("/surfaces/{kind}/open-change", response_model=SurfaceState)
async def change_surface_open(
    kind: SurfaceKind,
    request: SurfaceOpenChangeRequest,
    terminal: TerminalSession = Depends(get_terminal),
) -> SurfaceState:
    """
    Open or close a login surface.

    Closing a surface while the terminal is locked has no effect.
    """
    return terminal.surfaces.get(kind).on_open_change(request.open)


# -----------------------------------------------------------------------------
# Capabilities
# -----------------------------------------------------------------------------


@router.get("/capabilities", response_model=CapabilitiesResponse)
async def get_capabilities(
    user: UserProfile = Depends(get_current_user),
) -> CapabilitiesResponse:
    """Capabilities of the signed-in role, for hiding controls in the UI."""
    return CapabilitiesResponse(role=user.role, capabilities=capabilities_for(user.role))
