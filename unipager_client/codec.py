"""JSON codec for UniPager control frames."""

from __future__ import annotations

import json
from typing import Any

MAX_FRAME_SIZE = 1024 * 512


def encode(obj: Any) -> str:
    """Encode a Python object to a JSON text frame.

    Args:
        obj: JSON-serializable object (a string for bare tags)

    Returns:
        JSON text
    """
    return json.dumps(obj, separators=(",", ":"))


def decode(data: str | bytes, max_size: int = MAX_FRAME_SIZE) -> dict[str, Any]:
    """Decode a JSON text frame to a dictionary.

    Args:
        data: Frame payload
        max_size: Largest accepted payload in bytes

    Returns:
        Decoded dictionary. A JSON ``null`` frame decodes to an empty dict.

    Raises:
        ValueError: If data exceeds size limit, is not valid JSON or is not an object
    """
    if len(data) > max_size:
        raise ValueError(f"frame too large: {len(data)} bytes (max {max_size})")
    if isinstance(data, bytes):
        data = data.decode("utf-8")

    try:
        obj = json.loads(data)
    except RecursionError:
        raise ValueError("frame nested too deeply") from None
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ValueError(f"frame must be a JSON object, got {type(obj).__name__}")
    return obj
