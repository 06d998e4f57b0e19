"""UniPager control client: wires the connection, session, dispatcher and state.

Operator actions (save_config, reset_config, submit_page, run_test,
authenticate) raise NotConnectedError when the socket is not open; the
caller decides whether to report or drop it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .config import ClientConfig
from .connection import ConnectionManager
from .constants import E_DEFAULT_CONFIG, E_TEST, MSG_CONNECTED, MSG_DISCONNECTED
from .dispatcher import Dispatcher
from .envelope import (
    PagePayload,
    PageRequest,
    authenticate,
    command,
    send_message,
    set_config,
    validate_page_request,
)
from .history import LogEntry, LogLevel
from .session import Session
from .settings import SettingsStore
from .state import StateReconciler

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class ControlClient:
    """The single logical session with a UniPager backend.

    Observers call ``subscribe`` to be told which part of the state changed
    and read ``snapshot()`` for a copy of it.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        settings: SettingsStore | None = None,
        connection: ConnectionManager | None = None,
    ) -> None:
        """Initialize control client.

        Args:
            config: Core settings (endpoint, timing, settings file)
            settings: Credential and pager address store
            connection: Connection manager to drive (built from config if None)
        """
        self.config = config or ClientConfig()
        self.settings = settings or SettingsStore(self.config.settings_path)
        self.connection = connection or ConnectionManager(
            self.config.url,
            reconnect_delay_s=self.config.reconnect_delay_s,
            connect_timeout_s=self.config.connect_timeout_s,
            max_frame_size=self.config.max_frame_size,
        )

        self.state = StateReconciler()
        self.session = Session(self.connection.send, credential=self.settings.read())
        self.dispatcher = Dispatcher(
            self.state,
            self.session,
            max_frame_size=self.config.max_frame_size,
            on_change=self._notify,
        )
        self._listeners: list[Listener] = []

        self.connection.on_open = self._on_open
        self.connection.on_frame = self.dispatcher.dispatch_raw
        self.connection.on_close = self._on_close

    # --------------------------
    # Lifecycle
    # --------------------------

    def start(self) -> None:
        """Open the connection; it is kept alive until ``stop``."""
        self.connection.connect()

    async def stop(self) -> None:
        await self.connection.close()

    def _on_open(self) -> None:
        self.state.add_log(LogEntry(LogLevel.INFO, MSG_CONNECTED))
        self.session.handle_open()
        self._notify("log")
        self._notify("session")

    def _on_close(self, was_connected: bool) -> None:
        if was_connected:
            self.state.add_log(LogEntry(LogLevel.INFO, MSG_DISCONNECTED))
            self._notify("log")
        self.session.handle_close()
        self.state.reset_telemetry()
        self._notify("session")
        self._notify("telemetry")

    # --------------------------
    # Observers
    # --------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener.

        Args:
            listener: Called with a topic name after every state change

        Returns:
            Function removing the listener
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, topic: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(topic)
            except Exception as e:
                logger.exception("Error in change listener: %s", e)

    def snapshot(self) -> dict[str, Any]:
        """Return a read-only projection of the session and mirrored state."""
        data: dict[str, Any] = self.session.to_dict()
        data.update(self.state.snapshot())
        data["page_defaults"] = self.default_page_request().to_dict()
        return data

    # --------------------------
    # Operator actions
    # --------------------------

    def default_page_request(self) -> PageRequest:
        """Page request pre-filled with the last submitted pager address."""
        return PageRequest(payload=PagePayload(address=self.settings.read_pager_address()))

    def edit_config(self, document: dict[str, Any]) -> None:
        """Replace the local configuration document without sending it."""
        if not isinstance(document, dict):
            raise TypeError("config document must be a dict")
        self.state.replace_config(document)
        self._notify("config")

    def save_config(self) -> bool:
        """Send the current configuration document to the server.

        Returns:
            False if no document has been received or edited yet
        """
        if self.state.config is None:
            logger.debug("No configuration document to save")
            return False
        self.connection.send(set_config(self.state.config))
        return True

    def reset_config(self) -> None:
        self.connection.send(command(E_DEFAULT_CONFIG))

    def submit_page(self, request: PageRequest) -> None:
        """Remember the pager address for next time and send the page."""
        validate_page_request(request)
        self.settings.write_pager_address(request.payload.address)
        self.connection.send(send_message(request))

    def run_test(self) -> None:
        self.connection.send(command(E_TEST))

    def authenticate(self, secret: str) -> None:
        """Present a secret and persist it, whatever the server replies."""
        envelope = authenticate(secret)
        self.connection.send(envelope)
        self.session.credential = secret
        self.settings.write(secret)
        self._notify("session")
