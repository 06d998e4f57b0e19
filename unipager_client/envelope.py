"""Outbound envelope creation and validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .constants import (
    BARE_KINDS,
    DEFAULT_PAGE_FUNC,
    DEFAULT_PAGE_ID,
    DEFAULT_PAGE_PRIORITY,
    DEFAULT_PAGE_PROTOCOL,
    DEFAULT_PAGE_SPEED,
    E_AUTHENTICATE,
    E_SEND_MESSAGE,
    E_SET_CONFIG,
    PAYLOAD_KINDS,
)


class MessageType(str, Enum):
    """Pager message content type."""

    ALPHANUM = "alphanum"
    NUMERIC = "numeric"


@dataclass
class PagePayload:
    """Addressing and content of a single page."""

    address: int = 0
    speed: int = DEFAULT_PAGE_SPEED
    type: MessageType = MessageType.ALPHANUM
    func: int = DEFAULT_PAGE_FUNC
    data: str = ""


@dataclass
class PageRequest:
    """A page submitted by the operator."""

    id: str = DEFAULT_PAGE_ID
    protocol: str = DEFAULT_PAGE_PROTOCOL
    priority: int = DEFAULT_PAGE_PRIORITY
    payload: PagePayload = field(default_factory=PagePayload)

    def to_wire(self) -> dict[str, Any]:
        """Return the wire form used by the server (``message.addr``).

        Returns:
            SendMessage payload dictionary
        """
        return {
            "id": self.id,
            "protocol": self.protocol,
            "priority": self.priority,
            "message": {
                "addr": self.payload.address,
                "speed": self.payload.speed,
                "type": self.payload.type.value,
                "func": self.payload.func,
                "data": self.payload.data,
            },
        }

    def to_dict(self) -> dict[str, Any]:
        """Return the model form (``payload.address``) for display."""
        return {
            "id": self.id,
            "protocol": self.protocol,
            "priority": self.priority,
            "payload": {
                "address": self.payload.address,
                "speed": self.payload.speed,
                "type": self.payload.type.value,
                "func": self.payload.func,
                "data": self.payload.data,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], defaults: PageRequest | None = None) -> PageRequest:
        """Build a page request from a model-form dictionary.

        Missing fields are taken from ``defaults``.

        Args:
            data: Dictionary in the ``to_dict`` shape
            defaults: Request supplying values for absent fields

        Returns:
            Parsed page request

        Raises:
            TypeError: If a field has the wrong type
            ValueError: If a field value is invalid
        """
        if not isinstance(data, dict):
            raise TypeError("page request must be a dict")
        base = defaults or cls()

        payload = data.get("payload", {})
        if not isinstance(payload, dict):
            raise TypeError("page payload must be a dict")

        request = cls(
            id=data.get("id", base.id),
            protocol=data.get("protocol", base.protocol),
            priority=data.get("priority", base.priority),
            payload=PagePayload(
                address=payload.get("address", base.payload.address),
                speed=payload.get("speed", base.payload.speed),
                type=MessageType(payload.get("type", base.payload.type)),
                func=payload.get("func", base.payload.func),
                data=payload.get("data", base.payload.data),
            ),
        )
        validate_page_request(request)
        return request


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_page_request(request: PageRequest) -> None:
    """Validate page request field types.

    Args:
        request: Page request to validate

    Raises:
        TypeError: If a field has the wrong type
        ValueError: If a field value is invalid
    """
    if not isinstance(request.id, str):
        raise TypeError("page id must be a string")
    if not isinstance(request.protocol, str) or not request.protocol:
        raise ValueError("page protocol must be a non-empty string")
    if not _is_int(request.priority):
        raise TypeError("page priority must be an integer")

    p = request.payload
    for name in ("address", "speed", "func"):
        if not _is_int(getattr(p, name)):
            raise TypeError(f"page {name} must be an integer")
    if p.address < 0:
        raise ValueError("page address must be unsigned")
    if not isinstance(p.data, str):
        raise TypeError("page data must be a string")


@dataclass(frozen=True)
class Envelope:
    """An outbound tagged command."""

    kind: str
    payload: Any = None

    def to_wire(self) -> Any:
        """Return the JSON-ready form of this envelope."""
        if self.kind not in PAYLOAD_KINDS:
            return self.kind
        if isinstance(self.payload, PageRequest):
            return {self.kind: self.payload.to_wire()}
        return {self.kind: self.payload}


def make_envelope(kind: str, payload: Any = None) -> Envelope:
    """Create an outbound envelope.

    Args:
        kind: Envelope kind constant (E_*)
        payload: Payload for Authenticate, SetConfig and SendMessage

    Returns:
        Validated envelope
    """
    env = Envelope(kind, payload)
    validate_envelope(env)
    return env


def validate_envelope(env: Envelope) -> None:
    """Validate an outbound envelope.

    Args:
        env: Envelope to validate

    Raises:
        TypeError: If the payload has the wrong type
        ValueError: If the kind is unknown or a bare tag carries a payload
    """
    if env.kind in BARE_KINDS:
        if env.payload is not None:
            raise ValueError(f"{env.kind} does not take a payload")
        return

    if env.kind not in PAYLOAD_KINDS:
        raise ValueError(f"unknown envelope kind {env.kind!r}")

    if env.kind == E_AUTHENTICATE:
        if not isinstance(env.payload, str):
            raise TypeError("Authenticate secret must be a string")
    elif env.kind == E_SET_CONFIG:
        if not isinstance(env.payload, dict):
            raise TypeError("SetConfig document must be a dict")
    elif env.kind == E_SEND_MESSAGE:
        if not isinstance(env.payload, PageRequest):
            raise TypeError("SendMessage payload must be a PageRequest")
        validate_page_request(env.payload)


def authenticate(secret: str) -> Envelope:
    return make_envelope(E_AUTHENTICATE, secret)


def set_config(document: dict[str, Any]) -> Envelope:
    return make_envelope(E_SET_CONFIG, document)


def send_message(request: PageRequest) -> Envelope:
    return make_envelope(E_SEND_MESSAGE, request)


def command(kind: str) -> Envelope:
    """Create a bare-tag envelope such as ``GetVersion`` or ``Test``."""
    return make_envelope(kind)
