"""
Mapping of raw network responses into domain values.

Raw entities may arrive as mappings or attribute objects, keyed by ``key``
or ``entityKey``, with payload as bytes, a 0x hex string or already decoded, and with
attributes and timestamps optional. Write responses may carry an ``error``
member instead of raising.
"""

from __future__ import annotations

from typing import Any, Mapping

from .codec import decode_payload, hex_to_bytes, now_ms
from .errors import DecodeError
from .types import DEFAULT_CONTENT_TYPE, Attribute, Entity, WriteResult, coerce_attributes

_MISSING = object()


def _field(raw: Any, *names: str, default: Any = None) -> Any:
    """Return the first present field among names (mapping key or attribute)."""
    for name in names:
        if isinstance(raw, Mapping):
            value = raw.get(name, _MISSING)
        else:
            value = getattr(raw, name, _MISSING)
        if value is not _MISSING and value is not None:
            return value
    return default


def _attributes(raw: Any) -> list[Attribute]:
    attributes = _field(raw, "attributes")
    if attributes is None:
        combined: list[Any] = []
        for name in ("stringAttributes", "numericAttributes"):
            combined.extend(_field(raw, name, default=[]))
        attributes = combined
    try:
        return coerce_attributes(attributes)
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"Malformed attributes: {e}", raw) from e


def _timestamp(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _payload(value: Any, content_type: str) -> Any:
    if isinstance(value, str) and value[:2].lower() == "0x":
        try:
            value = hex_to_bytes(value)
        except ValueError:
            return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return decode_payload(value, content_type)
    return value


def to_entity(raw: Any) -> Entity:
    """Normalize one raw entity record.

    Raises:
        DecodeError: If the record has no entity key
    """
    entity_key = _field(raw, "entityKey", "entity_key", "key")
    if not entity_key:
        raise DecodeError("Entity record has no key", raw)

    content_type = _field(raw, "contentType", "content_type", default=DEFAULT_CONTENT_TYPE)

    payload = _payload(_field(raw, "payload", "value"), content_type)

    created_at = _timestamp(_field(raw, "createdAt", "created_at"))

    return Entity(
        entity_key=str(entity_key),
        content_type=str(content_type),
        attributes=_attributes(raw),
        created_at=created_at if created_at is not None else now_ms(),
        payload=payload,
        expires_at=_timestamp(_field(raw, "expiresAt", "expires_at")),
    )


def error_message(exc: BaseException) -> str:
    """Non-empty, credential-free message for a transport fault."""
    message = getattr(exc, "message", None) or str(exc)
    return message or exc.__class__.__name__


def failure_result(exc: BaseException) -> WriteResult:
    return WriteResult.err(error_message(exc))


def to_write_result(response: Any, entity_key: str | None = None) -> WriteResult:
    """Map a write-handle response into a WriteResult.

    Args:
        response: Response from create/update/delete
        entity_key: Targeted key for update/delete, used when the
            response does not echo one back
    """
    if response is None:
        return WriteResult.err("Empty response from entity network")

    error = _field(response, "error")
    if error:
        if isinstance(error, Mapping):
            error = error.get("message") or str(error)
        return WriteResult.err(str(error))

    # The targeted key wins so update/delete never report a different entity.
    key = entity_key or _field(response, "entityKey", "entity_key", "key")
    tx_hash = _field(response, "txHash", "tx_hash")
    if not key:
        return WriteResult.err("Entity network response did not include an entity key")
    if not tx_hash:
        return WriteResult.err("Entity network response did not include a transaction hash")
    return WriteResult.ok(entity_key=str(key), tx_hash=str(tx_hash))
