"""Routes decoded inbound frames to the state mirror and the session."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .frames import (
    AuthenticatedFrame,
    ConfigFrame,
    InboundFrame,
    LogFrame,
    MessageFrame,
    TelemetryFrame,
    TelemetryUpdateFrame,
    TimeslotFrame,
    UnknownFrame,
    VersionFrame,
    parse_frame,
)
from .session import Session
from .state import StateReconciler

logger = logging.getLogger(__name__)


class Dispatcher:
    """Applies every key of every inbound frame.

    Each kind has its own route; an unknown or unusable key is logged and
    the remaining keys of the same frame are still processed.
    """

    def __init__(
        self,
        state: StateReconciler,
        session: Session,
        *,
        max_frame_size: int | None = None,
        on_change: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize dispatcher.

        Args:
            state: State mirror to update
            session: Session receiving Authenticated replies
            max_frame_size: Largest inbound frame accepted (codec default if None)
            on_change: Called with a topic name after each applied frame
        """
        self.state = state
        self.session = session
        self.max_frame_size = max_frame_size
        self.on_change = on_change

    def dispatch_raw(self, raw: str | bytes) -> None:
        """Parse and apply a raw frame; malformed frames are ignored."""
        if self.max_frame_size is None:
            frames = parse_frame(raw)
        else:
            frames = parse_frame(raw, self.max_frame_size)
        for frame in frames:
            self.dispatch(frame)

    def dispatch(self, frame: InboundFrame) -> None:
        topic = self._apply(frame)
        if topic and self.on_change:
            try:
                self.on_change(topic)
            except Exception as e:
                logger.exception("Error in on_change callback: %s", e)

    def _apply(self, frame: InboundFrame) -> str | None:
        if isinstance(frame, LogFrame):
            self.state.add_log(frame.entry)
            return "log"
        if isinstance(frame, VersionFrame):
            self.state.set_version(frame.version)
            return "version"
        if isinstance(frame, ConfigFrame):
            self.state.replace_config(frame.document)
            return "config"
        if isinstance(frame, TelemetryFrame):
            self.state.replace_telemetry(frame.snapshot)
            return "telemetry"
        if isinstance(frame, TelemetryUpdateFrame):
            self.state.update_telemetry(frame.partial)
            return "telemetry"
        if isinstance(frame, TimeslotFrame):
            self.state.set_timeslot(frame.timeslot)
            return "timeslot"
        if isinstance(frame, AuthenticatedFrame):
            self.session.handle_authenticated(frame.authenticated)
            return "session"
        if isinstance(frame, MessageFrame):
            self.state.add_message(frame.message)
            return "messages"
        if isinstance(frame, UnknownFrame):
            logger.warning("Ignoring frame key %r: %s", frame.kind, frame.reason)
            return None

        logger.warning("Unhandled frame variant: %s", type(frame).__name__)
        return None
