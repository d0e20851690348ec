"""Pagination exceptions.

Every failure raised by the pagination engine derives from ``PaginationError``
and carries a human readable message plus structured ``details``. The
subclasses fall into four families so callers can react per family:

- ``PaginationConfigurationError``: the caller mis-composed the query or the
  request (no primary key, base ordering, bad page size, ...). Never retried.
- ``CursorError``: the supplied cursor is malformed, too large or was built
  for a different ordering. Callers typically answer with the first page.
- ``NonUniqueRootsError``: a page of root keys contained duplicates, usually
  because the query orders by a to-many association field.
- ``MissingPageEntryError``: a key selected in the first phase of keys-first
  pagination had no matching row in the second phase.
"""

from __future__ import annotations

from typing import Any


class PaginationError(Exception):
    """Base exception for pagination failures.

    Attributes:
        message: Error description.
        details: Additional context about the error.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize pagination error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# ============================================================================
# Configuration errors
# ============================================================================


class PaginationConfigurationError(PaginationError):
    """The query or the page request cannot be paginated as composed."""


class NoPrimaryKeyError(PaginationConfigurationError):
    """Root model has no primary key to use as a tie-breaker."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(
            f"{model_name} has no primary key; pagination needs one to append a "
            "stable tie-breaker and to reload unique root rows",
            details={"model": model_name},
        )


class ConflictingBaseOrderError(PaginationConfigurationError):
    """The base statement already carries an ORDER BY clause."""

    def __init__(self, order_by: list[str]):
        self.order_by = order_by
        super().__init__(
            "cannot paginate a statement that already has ORDER BY clauses; "
            "express ordering through ComposedQuery.order_by() instead",
            details={"base_order_by": order_by},
        )


class UnsupportedOrderFieldError(PaginationConfigurationError):
    """An order item cannot be used for this kind of pagination."""

    def __init__(self, message: str, field: Any = None):
        details = {"field": repr(field)} if field is not None else {}
        super().__init__(message, details=details)


class BoundaryCursorTooLargeError(PaginationConfigurationError):
    """Order values at a page boundary encode to a cursor above the size limit."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"order values at the page boundary encode to a {size}-byte cursor "
            f"(max {limit} bytes); order by shorter fields or raise "
            "PAGINATION_MAX_CURSOR_BYTES",
            details={"size": size, "limit": limit},
        )


class CustomSelectError(PaginationConfigurationError):
    """The statement selects something other than the root entity."""

    def __init__(self, selected: list[str]):
        self.selected = selected
        super().__init__(
            "pagination only supports statements selecting the root entity; "
            "remove custom columns from the select",
            details={"selected": selected},
        )


class InvalidPageSizeError(PaginationConfigurationError):
    """Page size or page size ceiling is not a positive integer."""

    def __init__(self, name: str, value: Any):
        super().__init__(
            f"{name} must be a positive integer, got: {value!r}",
            details={name: value},
        )


class InvalidDirectionError(PaginationConfigurationError):
    """Cursor direction is neither ``after`` nor ``before``."""

    def __init__(self, direction: Any):
        super().__init__(
            f"cursor direction must be 'after' or 'before', got: {direction!r}",
            details={"direction": direction},
        )


class InvalidOffsetError(PaginationConfigurationError):
    """Offset is not a non-negative integer."""

    def __init__(self, offset: Any):
        super().__init__(
            f"offset must be a non-negative integer, got: {offset!r}",
            details={"offset": offset},
        )


class UnknownTokenError(PaginationConfigurationError):
    """A field token does not resolve through the join graph."""

    def __init__(self, token: str, reason: str):
        self.token = token
        super().__init__(f"cannot resolve token {token!r}: {reason}", details={"token": token})


class UnsupportedBackendError(PaginationConfigurationError):
    """Default NULL placement is unknown for the database backend."""

    def __init__(self, backend: str, direction: str):
        self.backend = backend
        super().__init__(
            f"cannot infer the default NULL ordering of backend {backend!r} for "
            f"{direction!r}; use an explicit *_nulls_first / *_nulls_last direction "
            "or pass a NullOrdering that knows this backend",
            details={"backend": backend, "direction": direction},
        )


# ============================================================================
# Cursor errors
# ============================================================================


class CursorError(PaginationError):
    """The supplied cursor cannot be used for this request."""


class MalformedCursorError(CursorError):
    """Cursor is empty, not base64url JSON, or not a map of scalars."""


class OversizedCursorError(CursorError):
    """Encoded cursor exceeds the configured size limit."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"cursor is too large (max {limit} bytes); got {size} bytes",
            details={"size": size, "limit": limit},
        )


class CursorOrderMismatchError(CursorError):
    """Cursor fields differ from the order fields of the current query."""

    def __init__(self, expected: list[str], missing: list[str], extra: list[str]):
        self.expected = expected
        self.missing = missing
        self.extra = extra
        super().__init__(
            "cursor does not match the query's order fields; it was likely "
            "generated for a different query or the ordering changed",
            details={"expected": expected, "missing": missing, "extra": extra},
        )


# ============================================================================
# Result errors
# ============================================================================


class NonUniqueRootsError(PaginationError):
    """A page of root keys contained duplicates.

    This usually means the order depends on a to-many join (for example
    ordering by a field of a has-many association). Order by root or to-one
    fields, or by an aggregate, instead.
    """

    def __init__(self, order_by: list[str]):
        self.order_by = order_by
        super().__init__(
            "could not produce a page of unique root rows; the ordering most "
            "likely depends on a to-many join. Order by root/to-one fields or "
            "use an aggregate",
            details={"order_by": order_by},
        )


class MissingPageEntryError(PaginationError):
    """A key from the key query was missing from the entry reload."""

    def __init__(self, model_name: str, key: Any):
        self.model_name = model_name
        self.key = key
        super().__init__(
            f"expected to load {model_name} with primary key {key!r}, "
            "but it was missing from the results",
            details={"model": model_name, "key": key},
        )


__all__ = [
    "BoundaryCursorTooLargeError",
    "ConflictingBaseOrderError",
    "CursorError",
    "CursorOrderMismatchError",
    "CustomSelectError",
    "InvalidDirectionError",
    "InvalidOffsetError",
    "InvalidPageSizeError",
    "MalformedCursorError",
    "MissingPageEntryError",
    "NoPrimaryKeyError",
    "NonUniqueRootsError",
    "OversizedCursorError",
    "PaginationConfigurationError",
    "PaginationError",
    "UnknownTokenError",
    "UnsupportedBackendError",
    "UnsupportedOrderFieldError",
]
