"""Unit tests for cursor encoding and decoding."""

from __future__ import annotations

import base64
import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

import pytest

from pagewise.core.exceptions import (
    BoundaryCursorTooLargeError,
    CursorError,
    CursorOrderMismatchError,
    MalformedCursorError,
    OversizedCursorError,
    UnsupportedOrderFieldError,
)
from pagewise.core.pagination.cursor import CursorCodec


class Color(Enum):
    RED = "red"


def _encode_raw(payload) -> str:
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


@pytest.mark.unit
class TestCursorCodec:
    """Tests for CursorCodec encode/decode."""

    def test_encode_is_unpadded_base64url_json(self):
        """Encoded cursors are unpadded base64url JSON objects."""
        encoded = CursorCodec().encode({"id": 7, "title": "Golf"})

        assert "=" not in encoded
        padded = encoded + "=" * (-len(encoded) % 4)
        assert json.loads(base64.urlsafe_b64decode(padded)) == {"id": 7, "title": "Golf"}

    def test_encode_decode_roundtrip(self):
        """Decoding an encoded cursor returns the same map."""
        codec = CursorCodec()
        values = {"id": 3, "name@author": "Ada", "rating": None, "score": 1.5, "flag": True}

        assert codec.decode(codec.encode(values)) == values

    def test_special_types_serialized_as_strings(self):
        """Datetimes, UUIDs and decimals are written as strings."""
        codec = CursorCodec()
        uid = UUID("12345678-1234-5678-1234-567812345678")

        decoded = codec.decode(
            codec.encode({"at": datetime(2025, 1, 15, 10, 30), "uid": uid, "price": Decimal("9.50")})
        )

        assert decoded == {
            "at": "2025-01-15T10:30:00",
            "uid": "12345678-1234-5678-1234-567812345678",
            "price": "9.50",
        }

    def test_decode_accepts_padded_input(self):
        """Padded base64 is accepted as well."""
        encoded = _encode_raw({"id": 10})

        assert encoded.endswith("=")
        assert CursorCodec().decode(encoded) == {"id": 10}

    def test_decode_mapping_normalizes_keys(self):
        """A cursor given as a mapping is validated and returned."""
        assert CursorCodec().decode({"id": 1, "title": "A"}) == {"id": 1, "title": "A"}

    def test_unencodable_value_raises(self):
        """Values JSON cannot represent are rejected at encode time."""
        with pytest.raises(UnsupportedOrderFieldError):
            CursorCodec().encode({"blob": object()})

    @pytest.mark.parametrize("value", [[1, 2], {"a": 1}, ("x",)])
    def test_non_scalar_value_raises(self, value):
        """Lists and dicts from JSON or ARRAY columns cannot be cursor values."""
        with pytest.raises(UnsupportedOrderFieldError) as exc_info:
            CursorCodec().encode({"tags": value, "id": 1})

        assert exc_info.value.details == {"field": "'tags'"}

    def test_enum_written_as_value(self):
        """Enum members are written as their value."""
        codec = CursorCodec()

        assert codec.decode(codec.encode({"color": Color.RED, "id": 1})) == {"color": "red", "id": 1}

    def test_decode_mapping_with_enum_member(self):
        """Enum members in a mapping cursor become their value."""
        assert CursorCodec().decode({"color": Color.RED}) == {"color": "red"}


@pytest.mark.unit
class TestCursorCodecErrors:
    """Tests for rejected cursors."""

    def test_empty_string(self):
        """Empty strings are malformed; the first page omits the cursor."""
        with pytest.raises(MalformedCursorError, match="empty string"):
            CursorCodec().decode("")

    def test_not_base64(self):
        """Non-base64url input is malformed."""
        with pytest.raises(MalformedCursorError, match="base64url"):
            CursorCodec().decode("not base64!!")

    def test_not_json(self):
        """Base64 of something that is not JSON is malformed."""
        encoded = base64.urlsafe_b64encode(b"{nope").decode()

        with pytest.raises(MalformedCursorError, match="JSON decode error"):
            CursorCodec().decode(encoded)

    @pytest.mark.parametrize("payload", [[1, 2], "text", 5, None])
    def test_not_an_object(self, payload):
        """JSON that is not an object is malformed."""
        with pytest.raises(MalformedCursorError, match="expected a JSON object"):
            CursorCodec().decode(_encode_raw(payload))

    def test_empty_object(self):
        """An empty object is malformed."""
        with pytest.raises(MalformedCursorError, match="empty"):
            CursorCodec().decode(_encode_raw({}))

    def test_empty_mapping(self):
        """An empty mapping is malformed."""
        with pytest.raises(MalformedCursorError, match="empty"):
            CursorCodec().decode({})

    def test_nested_values(self):
        """Values must be scalars."""
        with pytest.raises(MalformedCursorError, match="scalars"):
            CursorCodec().decode(_encode_raw({"id": {"nested": 1}}))

    def test_non_string_mapping_key(self):
        """Mapping keys must be strings."""
        with pytest.raises(MalformedCursorError, match="keys must be strings"):
            CursorCodec().decode({1: "a"})

    def test_unsupported_type(self):
        """Only strings and mappings are cursors."""
        with pytest.raises(MalformedCursorError):
            CursorCodec().decode(42)  # type: ignore[arg-type]

    def test_oversized_on_decode(self):
        """Cursors above the size limit are rejected before decoding."""
        codec = CursorCodec(max_bytes=64)

        with pytest.raises(OversizedCursorError) as exc_info:
            codec.decode("a" * 65)

        assert exc_info.value.details == {"size": 65, "limit": 64}

    def test_oversized_on_encode(self):
        """Boundary values too large for a cursor are a configuration error."""
        with pytest.raises(BoundaryCursorTooLargeError) as exc_info:
            CursorCodec(max_bytes=64).encode({"title": "x" * 100})

        assert exc_info.value.limit == 64
        assert not isinstance(exc_info.value, CursorError)

    def test_default_limit_from_settings(self, monkeypatch):
        """The size limit comes from PAGINATION_MAX_CURSOR_BYTES."""
        from pagewise.core.settings import clear_settings_cache

        monkeypatch.setenv("PAGINATION_MAX_CURSOR_BYTES", "128")
        clear_settings_cache()

        assert CursorCodec().max_bytes == 128


@pytest.mark.unit
class TestValidateMatchesOrder:
    """Tests for cursor/order key comparison."""

    def test_matching_keys(self):
        """Same key set passes regardless of order."""
        CursorCodec.validate_matches_order({"id": 1, "title": "A"}, ["title", "id"])

    def test_mismatch_lists_expected_missing_extra(self):
        """Mismatches report what was expected, missing and extra."""
        with pytest.raises(CursorOrderMismatchError) as exc_info:
            CursorCodec.validate_matches_order({"id": 1, "rating": 3}, ["title", "id"])

        error = exc_info.value
        assert error.expected == ["title", "id"]
        assert error.missing == ["title"]
        assert error.extra == ["rating"]
