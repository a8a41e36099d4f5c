"""
Per-terminal session registry.

The backend serves every shared terminal in the shop. Each terminal is
identified by a header on each request and gets its own SessionService and
set of login surfaces, created on first use.
"""

import hmac
import logging
import secrets
from typing import Callable, Optional

from .models import SessionSnapshot
from .service import SessionService
from .surfaces import LoginSurfaces

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], SessionService]


class TerminalSession:
    """
    A terminal's session and the login surfaces bound to it.

    Each sign-in issues an opaque terminal token. Requests acting as the
    signed-in user must present it, so knowing a terminal ID is not enough
    to borrow someone's session. A new token is issued whenever a different
    user signs in or the terminal signs in again after logout, and the token
    is dropped on logout.
    """

    def __init__(self, terminal_id: str, session: SessionService):
        self.terminal_id = terminal_id
        self.session = session
        self.surfaces = LoginSurfaces(session)
        self._token: Optional[str] = None
        self._token_user_id: Optional[str] = None
        self._unsubscribe = session.subscribe(self._on_session_change)

    @property
    def token(self) -> Optional[str]:
        """Token for the signed-in user, or None when signed out."""
        return self._token

    def verify_token(self, token: Optional[str]) -> bool:
        if self._token is None or not token:
            return False
        return hmac.compare_digest(self._token.encode(), token.encode())

    def close(self) -> None:
        self._unsubscribe()
        self.surfaces.detach()
        self.session.close()
        self._token = None
        self._token_user_id = None

    def _on_session_change(self, snapshot: SessionSnapshot) -> None:
        user = snapshot.current_user
        if user is None:
            self._token = None
            self._token_user_id = None
        elif self._token is None or user.id != self._token_user_id:
            self._token = secrets.token_urlsafe(32)
            self._token_user_id = user.id
            logger.debug(f"Issued terminal token on {self.terminal_id} for {user.id}")


class TerminalSessionRegistry:
    """
    Registry of terminal sessions keyed by terminal ID.

    Sessions live in process memory. Restarting the API signs every
    terminal out; a browser still holding a Supabase token can resume with
    the restore endpoint.
    """

    def __init__(self, factory: SessionFactory):
        self._factory = factory
        self._terminals: dict[str, TerminalSession] = {}

    def get(self, terminal_id: str) -> TerminalSession:
        """Get a terminal's session, creating it on first use."""
        terminal = self._terminals.get(terminal_id)
        if terminal is None:
            terminal = TerminalSession(terminal_id, self._factory())
            self._terminals[terminal_id] = terminal
            logger.info(f"Created session for terminal {terminal_id}")
        return terminal

    def __contains__(self, terminal_id: str) -> bool:
        return terminal_id in self._terminals

    def __len__(self) -> int:
        return len(self._terminals)

    def discard(self, terminal_id: str) -> bool:
        """
        Close and forget a terminal's session.

        Returns:
            True if the terminal had a session
        """
        terminal = self._terminals.pop(terminal_id, None)
        if terminal is None:
            return False
        terminal.close()
        logger.info(f"Discarded session for terminal {terminal_id}")
        return True

    def close_all(self) -> None:
        """Close every session, cancelling their timers and in-flight calls."""
        for terminal in self._terminals.values():
            terminal.close()
        self._terminals.clear()
