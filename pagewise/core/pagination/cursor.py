"""Cursor encoding and decoding for pagination.

Cursors are opaque strings that encode a position in an ordered result set:
the value of every order field at a page boundary row, keyed by the field's
token. The next request seeks directly to that position.

The cursor format is:
1. JSON object mapping order tokens to scalar values
2. Base64 URL-safe encoded (unpadded) for use in URLs

Example cursor payload:
    {"id": 42, "name@author": "Ada", "published_at": "2025-01-15T10:30:00"}

Decoding accepts padded or unpadded input, and a cursor that is already a
mapping. Cursors carry no version; a cursor built for a different ordering
fails validation instead of silently seeking to the wrong place.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pagewise.core.exceptions import (
    BoundaryCursorTooLargeError,
    CursorOrderMismatchError,
    MalformedCursorError,
    OversizedCursorError,
    UnsupportedOrderFieldError,
)
from pagewise.core.settings import get_pagination_settings

_SCALAR_TYPES = (str, int, float, bool, type(None), datetime, date, UUID, Decimal)


class CursorCodec:
    """Encode, decode and validate pagination cursors.

    Usage:
        codec = CursorCodec()

        # Encoding
        cursor = codec.encode({"published_at": now, "id": 42})

        # Decoding
        values = codec.decode(cursor)
        print(values)  # {"id": 42, "published_at": "2025-01-15T10:30:00"}

        # Validation against the current order
        CursorCodec.validate_matches_order(values, ["published_at", "id"])
    """

    def __init__(self, max_bytes: int | None = None) -> None:
        """Initialize codec.

        Args:
            max_bytes: Maximum encoded cursor size. Defaults to
                ``PaginationSettings.max_cursor_bytes``.
        """
        self.max_bytes = max_bytes if max_bytes is not None else get_pagination_settings().max_cursor_bytes

    def encode(self, values: Mapping[str, Any]) -> str:
        """Encode cursor values to an opaque string.

        Args:
            values: Order token → value observed at a boundary row.

        Returns:
            Unpadded URL-safe base64 string.

        Raises:
            UnsupportedOrderFieldError: If a value is not a scalar JSON can
                represent (lists and dicts from JSON or ARRAY columns included).
            BoundaryCursorTooLargeError: If the encoded cursor exceeds
                ``max_bytes``.
        """
        for key, value in values.items():
            if not isinstance(value, _SCALAR_TYPES + (Enum,)):
                raise UnsupportedOrderFieldError(
                    f"cannot encode cursor value of type {type(value).__name__} for {key!r}; "
                    "order fields must hold scalar values",
                    field=key,
                )
        try:
            json_str = json.dumps(
                {str(key): value for key, value in values.items()},
                separators=(",", ":"),
                sort_keys=True,
                default=_serialize_value,
            )
        except TypeError as e:
            raise UnsupportedOrderFieldError(f"cannot encode cursor value: {e}") from e

        cursor = base64.urlsafe_b64encode(json_str.encode()).decode().rstrip("=")
        if len(cursor) > self.max_bytes:
            raise BoundaryCursorTooLargeError(len(cursor), self.max_bytes)
        return cursor

    def decode(self, cursor: str | Mapping[Any, Any]) -> dict[str, Any]:
        """Decode a cursor string (or validate a cursor mapping).

        Args:
            cursor: Encoded cursor string, or a mapping of token → value.

        Returns:
            Token → scalar value, keys normalized to strings.

        Raises:
            MalformedCursorError: If the cursor is empty, not base64url JSON,
                not an object, an empty object, or holds non-scalar values.
            OversizedCursorError: If the cursor exceeds ``max_bytes``.
        """
        if isinstance(cursor, Mapping):
            values = _normalize_map(cursor)
            if not values:
                raise MalformedCursorError(
                    "cursor map cannot be empty; omit the cursor for the first page"
                )
            return values

        if not isinstance(cursor, str):
            raise MalformedCursorError(
                "cursor must be a base64url-encoded JSON object or a mapping",
                details={"type": type(cursor).__name__},
            )
        if cursor == "":
            raise MalformedCursorError("cursor cannot be an empty string; omit it for the first page")
        if len(cursor.encode()) > self.max_bytes:
            raise OversizedCursorError(len(cursor.encode()), self.max_bytes)

        padded = cursor + "=" * (-len(cursor) % 4)
        try:
            json_str = base64.b64decode(padded, altchars=b"-_", validate=True).decode()
        except (binascii.Error, ValueError) as e:
            raise MalformedCursorError(
                "invalid cursor; expected base64url-encoded JSON", details={"cursor": cursor[:64]}
            ) from e

        try:
            payload = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise MalformedCursorError(f"invalid cursor; JSON decode error: {e.msg}") from e

        if not isinstance(payload, dict):
            raise MalformedCursorError(
                "invalid cursor; expected a JSON object", details={"type": type(payload).__name__}
            )

        values = _normalize_map(payload)
        if not values:
            raise MalformedCursorError(
                "invalid cursor; decoded cursor map was empty; omit the cursor for the first page"
            )
        return values

    @staticmethod
    def validate_matches_order(cursor: Mapping[str, Any], tokens: Iterable[str]) -> None:
        """Check that the cursor's keys equal the order's tokens.

        Raises:
            CursorOrderMismatchError: Listing expected, missing and extra keys.
        """
        expected = list(dict.fromkeys(tokens))
        expected_set = set(expected)
        cursor_set = set(cursor)
        missing = sorted(expected_set - cursor_set)
        extra = sorted(cursor_set - expected_set)
        if missing or extra:
            raise CursorOrderMismatchError(expected, missing, extra)


def _serialize_value(value: Any) -> Any:
    """JSON fallback for datetime, date, UUID, Decimal and enum values."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def _normalize_map(cursor: Mapping[Any, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, value in cursor.items():
        if isinstance(key, Enum):
            key = key.value
        if not isinstance(key, str):
            raise MalformedCursorError(
                "cursor keys must be strings", details={"key": repr(key)}
            )
        if key == "":
            raise MalformedCursorError("cursor map has an empty key")
        if key in values:
            raise MalformedCursorError(
                "cursor map has duplicate keys after normalization", details={"key": key}
            )
        if isinstance(value, Enum):
            value = value.value
        if not isinstance(value, _SCALAR_TYPES):
            raise MalformedCursorError(
                "cursor values must be scalars", details={"key": key, "type": type(value).__name__}
            )
        values[key] = value
    return values


__all__ = ["CursorCodec"]
