"""
Terminal session middleware.

Resolves the terminal a request comes from, the signed-in staff member on
that terminal (proven by the terminal token issued at sign-in), and (for
session restore) the Supabase user behind a bearer token.
"""

from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from modules.auth.exceptions import (
    InsufficientPermissionsError,
    InvalidTerminalTokenError,
    MissingTerminalError,
    SessionLockedError,
    SessionNotAuthenticatedError,
)
from modules.auth.models import UserProfile
from modules.auth.permissions import Capability, require
from modules.auth.registry import TerminalSession, TerminalSessionRegistry
from modules.auth.service import SessionService
from modules.auth.tokens import TokenValidator
from shared.config import get_settings
from shared.exceptions import AuthenticationError
from shared.models import AuthenticatedUser

from ..dependencies import get_terminal_registry, get_token_validator

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


class UnauthorizedError(HTTPException):
    """Authentication error with consistent format."""
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_terminal_id(request: Request) -> str:
    """Read the terminal ID header, rejecting requests without one."""
    header = get_settings().terminal_header
    terminal_id = request.headers.get(header, "").strip()
    if not terminal_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=MissingTerminalError(header).message,
        )
    return terminal_id


def get_terminal(
    terminal_id: str = Depends(get_terminal_id),
    registry: TerminalSessionRegistry = Depends(get_terminal_registry),
) -> TerminalSession:
    """Dependency resolving the calling terminal's session and surfaces."""
    return registry.get(terminal_id)


def get_session(terminal: TerminalSession = Depends(get_terminal)) -> SessionService:
    """Dependency resolving the calling terminal's session."""
    return terminal.session


def get_terminal_token(request: Request) -> Optional[str]:
    """Read the terminal token header issued at sign-in, if any."""
    return request.headers.get(get_settings().terminal_token_header) or None


def get_authorized_terminal(
    terminal: TerminalSession = Depends(get_terminal),
    token: Optional[str] = Depends(get_terminal_token),
) -> TerminalSession:
    """
    Dependency for routes that act as the terminal's signed-in user.

    While someone is signed in, the caller must present the terminal token
    returned by their sign-in. A signed-out terminal has nobody to act as,
    so no token is needed.
    """
    if terminal.session.current_user is not None and not terminal.verify_token(token):
        raise UnauthorizedError(InvalidTerminalTokenError().message)
    return terminal


async def get_current_user(
    terminal: TerminalSession = Depends(get_authorized_terminal),
) -> UserProfile:
    """
    Dependency that requires a signed-in, unlocked terminal.

    Usage:
        @router.get("/protected")
        async def protected_route(user: UserProfile = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    session = terminal.session
    user = session.current_user
    if user is None:
        raise UnauthorizedError(SessionNotAuthenticatedError().message)
    if session.is_locked:
        locked = SessionLockedError(user.id)
        raise HTTPException(
            status_code=locked.status_code,
            detail=locked.message,
        )
    return user


def require_capability(capability: Capability):
    """
    Dependency factory gating a route on a role capability.

    Usage:
        @router.post("/customers")
        async def create_customer(
            user: UserProfile = Depends(require_capability(Capability.CUSTOMERS_WRITE)),
        ):
            ...
    """
    async def dependency(user: UserProfile = Depends(get_current_user)) -> UserProfile:
        try:
            require(user.role, capability)
        except InsufficientPermissionsError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
        return user

    return dependency


async def get_token_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    validator: TokenValidator = Depends(get_token_validator),
) -> AuthenticatedUser:
    """Dependency validating a Supabase bearer token."""
    try:
        return validator.validate_token(credentials.credentials if credentials else None)
    except AuthenticationError as e:
        raise UnauthorizedError(e.message)

