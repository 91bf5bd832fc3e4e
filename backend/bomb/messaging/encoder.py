"""
JSON encoder/decoder for wire format communication.

Every frame is one JSON object sent as a WebSocket text message.
"""

import json
from typing import Any


def encode(data: dict[str, Any]) -> str:
    """
    Encode a dict to a compact JSON string.
    """
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


class DecodeError(Exception):
    """Error raised when a frame is not a JSON object or is too large."""


# Size limit to prevent resource exhaustion from malicious payloads.
MAX_FRAME_LEN = 64 * 1024  # 64KB per frame


def decode(data: str) -> dict[str, Any]:
    """
    Decode a JSON text frame to a dict.

    Raises DecodeError if data is invalid, not an object, or exceeds the size limit.
    """
    if len(data) > MAX_FRAME_LEN:
        raise DecodeError(f"payload too large: {len(data)} chars (max {MAX_FRAME_LEN})")
    try:
        result = json.loads(data)
    except (json.JSONDecodeError, RecursionError) as e:
        raise DecodeError(f"failed to decode JSON frame: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected object, got {type(result).__name__}")

    return result
