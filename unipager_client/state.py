"""Mirrored backend state: configuration, telemetry, timeslot and histories.

The reconciler is a plain container. It applies the replace and merge rules
for each inbound kind and does nothing else; notifying observers is the
client's job.
"""

from __future__ import annotations

import copy
from typing import Any

from .constants import HISTORY_LIMIT, TELEMETRY_KEYS
from .history import HistoryBuffer, LogEntry


def default_telemetry() -> dict[str, Any]:
    """Return the empty telemetry shape ``{node: {}, config: {}, messages: {}}``."""
    return {key: {} for key in TELEMETRY_KEYS}


class StateReconciler:
    """Holds the client's mirror of backend state."""

    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        self.version: str = ""
        self.config: dict[str, Any] | None = None
        self.telemetry: dict[str, Any] = default_telemetry()
        self.timeslot: int = 0
        self.log: HistoryBuffer[LogEntry] = HistoryBuffer(history_limit)
        self.messages: HistoryBuffer[Any] = HistoryBuffer(history_limit)

    def set_version(self, version: str) -> None:
        self.version = version

    def replace_config(self, document: dict[str, Any]) -> None:
        """Replace the configuration document wholesale (never deep-merged)."""
        self.config = document

    def replace_telemetry(self, snapshot: dict[str, Any]) -> None:
        self.telemetry = snapshot

    def update_telemetry(self, partial: dict[str, Any]) -> None:
        """Swap in each named top-level key; nested values are not merged.

        Keys absent from ``partial`` are left untouched.
        """
        for key, value in partial.items():
            self.telemetry[key] = value

    def reset_telemetry(self) -> None:
        self.telemetry = default_telemetry()

    def set_timeslot(self, timeslot: int) -> None:
        self.timeslot = timeslot

    def add_log(self, entry: LogEntry) -> None:
        self.log.add(entry)

    def add_message(self, message: Any) -> None:
        self.messages.add(message)

    def snapshot(self) -> dict[str, Any]:
        """Return a deep-copied, JSON-ready projection of the mirrored state."""
        return {
            "version": self.version,
            "config": copy.deepcopy(self.config),
            "telemetry": copy.deepcopy(self.telemetry),
            "timeslot": self.timeslot,
            "log": [entry.to_dict() for entry in self.log],
            "messages": copy.deepcopy(self.messages.to_list()),
        }
