"""Bounded newest-first history buffers for log lines and inbound messages."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from .constants import HISTORY_LIMIT, LOG_LEVEL_CODES

T = TypeVar("T")


class LogLevel(str, Enum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"


@dataclass(frozen=True)
class LogEntry:
    """A line in the operator log."""

    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


def level_from_code(code: Any) -> LogLevel:
    """Map a wire level code to a log level.

    Codes 1-5 map to error, warn, info, debug and trace. Anything else,
    including a missing code, maps to info.
    """
    if isinstance(code, bool) or not isinstance(code, int):
        return LogLevel.INFO
    return LogLevel(LOG_LEVEL_CODES.get(code, LogLevel.INFO.value))


def log_entry_from_record(record: Any) -> LogEntry:
    """Build a log entry from an inbound ``[levelCode, text]`` record.

    Args:
        record: Wire record; short or malformed records are tolerated

    Returns:
        Log entry stamped with the current time
    """
    if not isinstance(record, (list, tuple)):
        record = ()

    code = record[0] if len(record) > 0 else None
    text = record[1] if len(record) > 1 else None
    if text is None:
        text = ""
    elif not isinstance(text, str):
        text = str(text)

    return LogEntry(level=level_from_code(code), message=text)


class HistoryBuffer(Generic[T]):
    """Fixed-capacity buffer, newest entry first.

    Inserting into a full buffer evicts the oldest entry.
    """

    def __init__(self, capacity: int = HISTORY_LIMIT) -> None:
        if capacity < 1:
            raise ValueError("history capacity must be positive")
        self.capacity = capacity
        self._items: deque[T] = deque(maxlen=capacity)

    def add(self, item: T) -> None:
        self._items.appendleft(item)

    def clear(self) -> None:
        self._items.clear()

    def newest(self) -> T | None:
        return self._items[0] if self._items else None

    def to_list(self) -> list[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]
