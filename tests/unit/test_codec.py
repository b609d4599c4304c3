"""
Unit tests for payload encoding.

Tests cover:
- JSON round trip for structured payloads
- Lenient decoding of non-JSON bytes
- Content-type handling
- Expiration conversion
"""

import pytest

from sdk.skillchain_sdk.codec import (
    bytes_to_hex,
    decode_payload,
    encode_payload,
    expiration_from_minutes,
    hex_to_bytes,
    is_json_content_type,
)


class TestEncodeDecode:
    """Tests for encode_payload / decode_payload."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Test User", "skills": ["Rust", "Polkadot"]},
            [1, 2, {"nested": True}],
            "plain string",
            42,
            None,
            {"unicode": "héllo ✓"},
        ],
    )
    def test_round_trip(self, payload):
        """decode(encode(P)) == P for JSON content."""
        assert decode_payload(encode_payload(payload), "application/json") == payload

    def test_encode_produces_bytes(self):
        """Encoded payload is UTF-8 JSON bytes."""
        assert encode_payload({"a": 1}) == b'{"a":1}'

    def test_encode_ignores_content_type(self):
        """Encoding does not depend on content type (it takes none)."""
        assert encode_payload("text") == b'"text"'

    def test_encode_rejects_unserializable(self):
        """Non-JSON values raise TypeError."""
        with pytest.raises(TypeError):
            encode_payload({"bad": object()})

    def test_decode_invalid_json_returns_string(self):
        """Bytes that are not JSON degrade to the decoded string."""
        assert decode_payload(b"not json {", "application/json") == "not json {"

    def test_decode_defaults_to_json(self):
        """Missing content type is treated as JSON."""
        assert decode_payload(b'{"a": 1}') == {"a": 1}

    def test_decode_non_json_content_type(self):
        """Non-JSON content types return text without parsing."""
        assert decode_payload(b'{"a": 1}', "text/plain") == '{"a": 1}'

    def test_decode_none(self):
        """Absent payload stays absent."""
        assert decode_payload(None) is None

    def test_decode_invalid_utf8_does_not_raise(self):
        """Invalid UTF-8 is replaced rather than raising."""
        assert isinstance(decode_payload(b"\xff\xfe", "text/plain"), str)


class TestContentType:
    """Tests for JSON content-type detection."""

    @pytest.mark.parametrize(
        "content_type",
        ["application/json", "application/json; charset=utf-8", "application/ld+json", "", None],
    )
    def test_json_types(self, content_type):
        assert is_json_content_type(content_type)

    @pytest.mark.parametrize("content_type", ["text/plain", "image/png"])
    def test_non_json_types(self, content_type):
        assert not is_json_content_type(content_type)


class TestHex:
    """Tests for hex helpers."""

    def test_hex_round_trip(self):
        assert hex_to_bytes(bytes_to_hex(b"\x01\xab")) == b"\x01\xab"

    def test_hex_without_prefix(self):
        assert hex_to_bytes("abcd") == b"\xab\xcd"


class TestExpiration:
    """Tests for expiration_from_minutes."""

    def test_absolute_from_issue_time(self):
        """Relative minutes become absolute Unix ms."""
        assert expiration_from_minutes(60, issued_at=1_000) == 1_000 + 60 * 60 * 1000

    def test_defaults_to_now(self):
        """Without issued_at the expiration is in the future."""
        from sdk.skillchain_sdk.codec import now_ms

        before = now_ms()
        assert expiration_from_minutes(1) >= before + 60_000

    @pytest.mark.parametrize("minutes", [0, -5])
    def test_rejects_non_positive(self, minutes):
        with pytest.raises(ValueError):
            expiration_from_minutes(minutes)
