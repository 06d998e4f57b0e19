"""Inbound frame decoding into typed variants."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Union

from .codec import MAX_FRAME_SIZE, decode
from .constants import (
    F_AUTHENTICATED,
    F_CONFIG,
    F_LOG,
    F_MESSAGE,
    F_TELEMETRY,
    F_TELEMETRY_UPDATE,
    F_TIMESLOT,
    F_VERSION,
)
from .history import LogEntry, log_entry_from_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogFrame:
    entry: LogEntry


@dataclass(frozen=True)
class VersionFrame:
    version: str


@dataclass(frozen=True)
class ConfigFrame:
    document: dict[str, Any]


@dataclass(frozen=True)
class TelemetryFrame:
    snapshot: dict[str, Any]


@dataclass(frozen=True)
class TelemetryUpdateFrame:
    partial: dict[str, Any]


@dataclass(frozen=True)
class TimeslotFrame:
    timeslot: int


@dataclass(frozen=True)
class AuthenticatedFrame:
    authenticated: bool


@dataclass(frozen=True)
class MessageFrame:
    message: Any


@dataclass(frozen=True)
class UnknownFrame:
    """A key outside the routing table, or a known key with an unusable payload."""

    kind: str
    payload: Any
    reason: str = "unknown kind"


InboundFrame = Union[
    LogFrame,
    VersionFrame,
    ConfigFrame,
    TelemetryFrame,
    TelemetryUpdateFrame,
    TimeslotFrame,
    AuthenticatedFrame,
    MessageFrame,
    UnknownFrame,
]


def _decode_log(value: Any) -> InboundFrame:
    return LogFrame(log_entry_from_record(value))


def _decode_version(value: Any) -> InboundFrame:
    if not isinstance(value, str):
        return UnknownFrame(F_VERSION, value, "version must be a string")
    return VersionFrame(value)


def _decode_config(value: Any) -> InboundFrame:
    if not isinstance(value, dict):
        return UnknownFrame(F_CONFIG, value, "config must be an object")
    return ConfigFrame(value)


def _decode_telemetry(value: Any) -> InboundFrame:
    if not isinstance(value, dict):
        return UnknownFrame(F_TELEMETRY, value, "telemetry must be an object")
    return TelemetryFrame(value)


def _decode_telemetry_update(value: Any) -> InboundFrame:
    if not isinstance(value, dict):
        return UnknownFrame(F_TELEMETRY_UPDATE, value, "telemetry update must be an object")
    return TelemetryUpdateFrame(value)


def _decode_timeslot(value: Any) -> InboundFrame:
    if isinstance(value, bool) or not isinstance(value, int):
        return UnknownFrame(F_TIMESLOT, value, "timeslot must be an integer")
    return TimeslotFrame(value)


def _decode_authenticated(value: Any) -> InboundFrame:
    if not isinstance(value, bool):
        return UnknownFrame(F_AUTHENTICATED, value, "authenticated must be a boolean")
    return AuthenticatedFrame(value)


def _decode_message(value: Any) -> InboundFrame:
    return MessageFrame(value)


_DECODERS = {
    F_LOG: _decode_log,
    F_VERSION: _decode_version,
    F_CONFIG: _decode_config,
    F_TELEMETRY: _decode_telemetry,
    F_TELEMETRY_UPDATE: _decode_telemetry_update,
    F_TIMESLOT: _decode_timeslot,
    F_AUTHENTICATED: _decode_authenticated,
    F_MESSAGE: _decode_message,
}


def decode_document(document: dict[str, Any]) -> list[InboundFrame]:
    """Turn every key of a parsed frame into a typed variant, in key order.

    Args:
        document: Parsed frame object

    Returns:
        One variant per key; keys outside the routing table become UnknownFrame
    """
    frames: list[InboundFrame] = []
    for kind, value in document.items():
        decoder = _DECODERS.get(kind)
        if decoder is None:
            frames.append(UnknownFrame(kind, value))
        else:
            frames.append(decoder(value))
    return frames


def parse_frame(raw: str | bytes, max_size: int = MAX_FRAME_SIZE) -> list[InboundFrame]:
    """Parse a raw text frame.

    A frame that fails to parse is treated as an empty document.

    Args:
        raw: Frame payload as received
        max_size: Largest accepted payload in bytes

    Returns:
        Typed variants for every key in the frame
    """
    try:
        document = decode(raw, max_size)
    except ValueError as e:
        logger.debug("Ignoring malformed frame: %s", e)
        return []
    return decode_document(document)
