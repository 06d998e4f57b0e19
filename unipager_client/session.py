"""Session state machine: connection status, handshake and post-auth queries."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from .connection import NotConnectedError
from .constants import POST_AUTH_QUERIES
from .envelope import Envelope, authenticate, command

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Handshake lifecycle.

    DISCONNECTED -> AWAITING_AUTH -> AUTHENTICATED | UNAUTHENTICATED,
    back to DISCONNECTED on every transport close.
    """

    DISCONNECTED = "disconnected"
    AWAITING_AUTH = "awaiting_auth"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class Session:
    """Tracks whether the single logical session is connected and authenticated.

    Lives for the whole process. The credential survives reconnects; the
    connected and authenticated flags do not.
    """

    def __init__(self, send: Callable[[Envelope], None], credential: str | None = None) -> None:
        """Initialize session.

        Args:
            send: Function transmitting an envelope on the open socket
            credential: Secret to present on the next handshake
        """
        self._send = send
        self.credential = credential
        self.state = SessionState.DISCONNECTED

    @property
    def connected(self) -> bool:
        return self.state is not SessionState.DISCONNECTED

    @property
    def authenticated(self) -> bool | None:
        """True or False once the server has replied; None while unknown."""
        if self.state is SessionState.AUTHENTICATED:
            return True
        if self.state is SessionState.UNAUTHENTICATED:
            return False
        return None

    def handle_open(self) -> None:
        """Enter AWAITING_AUTH and present the credential (empty if none)."""
        self.state = SessionState.AWAITING_AUTH
        try:
            self._send(authenticate(self.credential or ""))
        except NotConnectedError as e:
            logger.warning("Could not send Authenticate: %s", e)

    def handle_authenticated(self, authenticated: bool) -> None:
        if authenticated:
            self.state = SessionState.AUTHENTICATED
            logger.info("Authenticated")
            try:
                for kind in POST_AUTH_QUERIES:
                    self._send(command(kind))
            except NotConnectedError as e:
                logger.warning("Could not query server state: %s", e)
        else:
            self.state = SessionState.UNAUTHENTICATED
            logger.warning("Authentication rejected")
            # Only the in-memory copy is dropped; the persisted secret is
            # left as is and presented again after a restart.
            self.credential = ""

    def handle_close(self) -> None:
        self.state = SessionState.DISCONNECTED

    def to_dict(self) -> dict[str, bool | None]:
        return {"connected": self.connected, "authenticated": self.authenticated}
