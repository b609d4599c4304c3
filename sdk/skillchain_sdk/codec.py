"""
Payload encoding for the entity network.

Payloads always travel as JSON bytes. The content type stored next to a
payload is metadata only; encoding never consults it. Decoding is lenient:
bytes that do not parse as JSON come back as the decoded string.
"""

from __future__ import annotations

import json
import time
from typing import Any

from .types import DEFAULT_CONTENT_TYPE

MS_PER_MINUTE = 60 * 1000


def encode_payload(value: Any) -> bytes:
    """Serialize a payload value to UTF-8 JSON bytes.

    Raises:
        TypeError: If the value is not JSON-serializable
        ValueError: If the value contains NaN/Infinity or circular references
    """
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode(
        "utf-8"
    )


def is_json_content_type(content_type: str | None) -> bool:
    if not content_type:
        return True
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == DEFAULT_CONTENT_TYPE or media_type.endswith("+json")


def decode_payload(data: bytes | bytearray | memoryview | None, content_type: str | None = None) -> Any:
    """Decode payload bytes fetched from the network.

    Args:
        data: Raw payload bytes (None passes through)
        content_type: Stored content type; JSON when omitted

    Returns:
        Parsed JSON for JSON content types, otherwise (or on parse
        failure) the UTF-8 decoded string
    """
    if data is None:
        return None
    text = bytes(data).decode("utf-8", errors="replace")
    if not is_json_content_type(content_type):
        return text
    try:
        return json.loads(text)
    except ValueError:
        return text


def hex_to_bytes(value: str) -> bytes:
    """Convert a 0x-prefixed (or bare) hex string to bytes."""
    digits = value[2:] if value[:2].lower() == "0x" else value
    return bytes.fromhex(digits)


def bytes_to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def now_ms() -> int:
    return int(time.time() * 1000)


def expiration_from_minutes(minutes: int | float, issued_at: int | None = None) -> int:
    """Convert a relative lifetime into an absolute expiration (Unix ms).

    Args:
        minutes: Lifetime in minutes, must be positive
        issued_at: Issuance time in Unix ms (defaults to now)
    """
    if isinstance(minutes, bool) or minutes <= 0:
        raise ValueError(f"expires_in_minutes must be positive, got {minutes!r}")
    base = now_ms() if issued_at is None else issued_at
    return base + int(minutes * MS_PER_MINUTE)
