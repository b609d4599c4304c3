"""
Unit tests for result normalization.

Tests cover:
- Raw entity shapes (key vs entityKey, bytes vs decoded payload)
- Optional attributes, payload and timestamps
- Write response mapping to WriteResult
"""

from types import SimpleNamespace

import pytest

from sdk.skillchain_sdk.errors import DecodeError, TransportError
from sdk.skillchain_sdk.normalize import (
    failure_result,
    to_entity,
    to_write_result,
)
from sdk.skillchain_sdk.types import Attribute


class TestToEntity:
    """Tests for to_entity."""

    def test_bytes_payload_decoded(self):
        entity = to_entity(
            {
                "key": "0x1234567890abcdef",
                "entityKey": "0x1234567890abcdef",
                "payload": b'{"name": "Test User", "skills": ["Rust"]}',
                "contentType": "application/json",
                "attributes": [{"key": "type", "value": "profile"}],
                "createdAt": 1700000000000,
            }
        )
        assert entity.entity_key == "0x1234567890abcdef"
        assert entity.payload == {"name": "Test User", "skills": ["Rust"]}
        assert entity.attributes == [Attribute("type", "profile")]
        assert entity.created_at == 1700000000000
        assert entity.expires_at is None

    def test_decoded_payload_passes_through(self):
        """Subscription events may carry an already-decoded payload."""
        entity = to_entity({"entityKey": "0xabc", "payload": {"name": "New Entity"}, "attributes": []})
        assert entity.payload == {"name": "New Entity"}

    def test_hex_string_payload_decoded(self):
        """Drivers may hand back the payload as 0x-prefixed hex."""
        entity = to_entity({"key": "0x1", "payload": "0x7b2261223a317d"})
        assert entity.payload == {"a": 1}

    def test_hex_string_payload_with_text_content_type(self):
        entity = to_entity({"key": "0x1", "value": "0x68656c6c6f", "contentType": "text/plain"})
        assert entity.payload == "hello"

    def test_invalid_hex_string_kept_as_is(self):
        entity = to_entity({"key": "0x1", "payload": "0xnot-hex"})
        assert entity.payload == "0xnot-hex"

    def test_invalid_json_payload_degrades_to_string(self):
        entity = to_entity({"key": "0x1", "payload": b"hello", "contentType": "application/json"})
        assert entity.payload == "hello"

    def test_defaults_when_optional_fields_missing(self):
        entity = to_entity({"key": "0x1"})
        assert entity.content_type == "application/json"
        assert entity.attributes == []
        assert entity.payload is None
        assert entity.created_at > 0

    def test_string_and_numeric_attributes_merged(self):
        entity = to_entity(
            {
                "key": "0x1",
                "stringAttributes": [{"key": "type", "value": "claim"}],
                "numericAttributes": [{"key": "level", "value": 3}],
            }
        )
        assert entity.attributes == [Attribute("type", "claim"), Attribute("level", "3")]

    def test_object_record(self):
        raw = SimpleNamespace(entityKey="0x9", payload=b"[1]", contentType="application/json",
                              attributes=None, createdAt=5, expiresAt=10)
        entity = to_entity(raw)
        assert entity.payload == [1]
        assert entity.expires_at == 10

    def test_missing_key(self):
        with pytest.raises(DecodeError):
            to_entity({"payload": b"{}"})

    def test_malformed_attributes(self):
        with pytest.raises(DecodeError):
            to_entity({"key": "0x1", "attributes": [{"key": "only-key"}]})


class TestToWriteResult:
    """Tests for write response mapping."""

    def test_create_success(self):
        result = to_write_result({"entityKey": "0x1234567890abcdef", "txHash": "0xabcdef1234567890"})
        assert result.success
        assert result.entity_key == "0x1234567890abcdef"
        assert result.tx_hash == "0xabcdef1234567890"

    def test_update_uses_targeted_key(self):
        """Update/delete responses without a key echo the targeted key."""
        result = to_write_result({"txHash": "0xabc"}, entity_key="0x1")
        assert result.entity_key == "0x1"

    def test_targeted_key_wins(self):
        result = to_write_result({"entityKey": "0xother", "txHash": "0xabc"}, entity_key="0x1")
        assert result.entity_key == "0x1"

    def test_error_member(self):
        result = to_write_result({"error": "entity not found"})
        assert not result.success
        assert result.error == "entity not found"

    def test_error_object(self):
        result = to_write_result({"error": {"code": -32000, "message": "reverted"}})
        assert result.error == "reverted"

    def test_missing_tx_hash(self):
        result = to_write_result({"entityKey": "0x1"})
        assert not result.success
        assert "transaction hash" in result.error

    def test_missing_key_on_create(self):
        assert not to_write_result({"txHash": "0x1"}).success

    def test_none_response(self):
        assert not to_write_result(None).success


class TestFailureResult:
    """Tests for exception mapping."""

    def test_uses_message(self):
        result = failure_result(TransportError("insufficient funds"))
        assert result.error == "insufficient funds"

    def test_empty_message_falls_back_to_type(self):
        result = failure_result(RuntimeError())
        assert result.error == "RuntimeError"
