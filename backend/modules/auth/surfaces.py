"""
Login surface bindings.

The login form appears in three places: the full-page login route, the
"switch user" dialog and the floating quick-switch widget. All three bind to
the same SessionService and differ only in when they are visible and
whether they can be dismissed.
"""

import logging
from typing import Callable, Optional

from .models import (
    SessionSnapshot,
    SessionState,
    StaffRole,
    SurfaceKind,
    SurfaceState,
    UserProfile,
)
from .service import SessionService

logger = logging.getLogger(__name__)

# Roles that get the floating quick-switch widget
WIDGET_ROLES = frozenset({StaffRole.TECHNICIAN, StaffRole.FRONT_DESK})


class LoginSurface:
    """
    One place the login form is rendered.

    The dialog and widget open themselves when the terminal is locked and
    refuse to close until someone signs in. A successful sign-in or user
    switch closes them.
    """

    def __init__(self, kind: SurfaceKind, session: SessionService):
        self.kind = kind
        self._session = session
        self._open = False
        self._last_user_id: Optional[str] = self._user_id(session.current_user)
        self._last_state = session.state
        self._unsubscribe: Optional[Callable[[], None]] = session.subscribe(self._on_session_change)

    @staticmethod
    def _user_id(user: Optional[UserProfile]) -> Optional[str]:
        return user.id if user is not None else None

    @property
    def is_visible(self) -> bool:
        user = self._session.current_user
        if self.kind is SurfaceKind.FULL_PAGE:
            return user is None
        if user is None:
            return False
        if self.kind is SurfaceKind.SWITCH_USER_DIALOG:
            return user.role is not StaffRole.MANAGER or self._session.is_locked
        return user.role in WIDGET_ROLES

    @property
    def is_open(self) -> bool:
        if not self.is_visible:
            return False
        if self.kind is SurfaceKind.FULL_PAGE:
            return True
        return self._open or self._session.is_locked

    @property
    def is_dismissible(self) -> bool:
        return self.kind is not SurfaceKind.FULL_PAGE and not self._session.is_locked

    def state(self) -> SurfaceState:
        return SurfaceState(
            kind=self.kind,
            visible=self.is_visible,
            open=self.is_open,
            dismissible=self.is_dismissible,
        )

    def open(self) -> SurfaceState:
        """Open the surface (the "switch user" button)."""
        if self.kind is not SurfaceKind.FULL_PAGE:
            self._open = True
        return self.state()

    def on_open_change(self, open: bool) -> SurfaceState:
        """
        Handle the surface asking to open or close.

        Closing is ignored while the terminal is locked. Closing an open
        surface drops any half-finished quick-access selection; closing one
        that is already closed leaves the flow of other surfaces alone.
        """
        if open:
            return self.open()

        if not self.is_dismissible:
            logger.debug(f"Ignoring close of {self.kind.value} while it cannot be dismissed")
            return self.state()

        was_open = self.is_open
        self._open = False
        if was_open:
            self._session.cancel_quick_access()
        return self.state()

    def detach(self) -> None:
        """Stop following the session."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_session_change(self, snapshot: SessionSnapshot) -> None:
        user_id = self._user_id(snapshot.current_user)

        if snapshot.is_locked:
            if self.kind is not SurfaceKind.FULL_PAGE:
                self._open = True
        elif snapshot.state is SessionState.AUTHENTICATED and (
            self._last_state is not SessionState.AUTHENTICATED or user_id != self._last_user_id
        ):
            self._open = False
        elif snapshot.state is SessionState.UNAUTHENTICATED:
            self._open = False

        self._last_state = snapshot.state
        self._last_user_id = user_id


class LoginSurfaces:
    """The three login surfaces of one terminal."""

    def __init__(self, session: SessionService):
        self._surfaces = {kind: LoginSurface(kind, session) for kind in SurfaceKind}

    def get(self, kind: SurfaceKind) -> LoginSurface:
        return self._surfaces[kind]

    def states(self) -> list[SurfaceState]:
        return [surface.state() for surface in self._surfaces.values()]

    def detach(self) -> None:
        for surface in self._surfaces.values():
            surface.detach()
