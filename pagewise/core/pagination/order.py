"""Order specification normalization.

Every paginated request must be ordered by a strict total order, otherwise
rows that tie on every order field can repeat or vanish across page
boundaries. The normalizer appends the root primary key (ascending) as the
final tie-break and drops duplicate tokens, keeping the first occurrence.

Ordering is only ever expressed through the pagination request: a base
statement that already carries ``ORDER BY`` is rejected, because two sources
of ordering make the seek predicate ambiguous.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pagewise.core.database.dialects import NullOrdering, NullPosition
from pagewise.core.exceptions import (
    ConflictingBaseOrderError,
    NoPrimaryKeyError,
    UnsupportedOrderFieldError,
)

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.sql.elements import ColumnElement


class SortDirection(StrEnum):
    """Supported ORDER BY directions."""

    ASC = "asc"
    DESC = "desc"
    ASC_NULLS_FIRST = "asc_nulls_first"
    ASC_NULLS_LAST = "asc_nulls_last"
    DESC_NULLS_FIRST = "desc_nulls_first"
    DESC_NULLS_LAST = "desc_nulls_last"

    @property
    def base(self) -> str:
        """``asc`` or ``desc`` without NULL placement."""
        return "asc" if self.value.startswith("asc") else "desc"

    @property
    def explicit_nulls(self) -> NullPosition | None:
        """NULL placement spelled out by the direction, if any."""
        if self.value.endswith("_nulls_first"):
            return NullPosition.FIRST
        if self.value.endswith("_nulls_last"):
            return NullPosition.LAST
        return None

    def reversed(self) -> SortDirection:
        """Direction that walks the same order backwards.

        NULL placement flips along with the direction so that the reversed
        order is the exact mirror image.
        """
        return _REVERSED[self]

    def effective(self, null_ordering: NullOrdering) -> tuple[str, NullPosition]:
        """Resolve ``(base, nulls)`` using the backend default when implicit."""
        nulls = self.explicit_nulls
        if nulls is None:
            nulls = null_ordering.default_position(self.base)
        return self.base, nulls

    def apply(self, column: Any) -> ColumnElement[Any]:
        """Build the ORDER BY clause for ``column``."""
        clause = column.asc() if self.base == "asc" else column.desc()
        nulls = self.explicit_nulls
        if nulls is NullPosition.FIRST:
            clause = clause.nulls_first()
        elif nulls is NullPosition.LAST:
            clause = clause.nulls_last()
        return clause


_REVERSED = {
    SortDirection.ASC: SortDirection.DESC,
    SortDirection.DESC: SortDirection.ASC,
    SortDirection.ASC_NULLS_FIRST: SortDirection.DESC_NULLS_LAST,
    SortDirection.ASC_NULLS_LAST: SortDirection.DESC_NULLS_FIRST,
    SortDirection.DESC_NULLS_FIRST: SortDirection.ASC_NULLS_LAST,
    SortDirection.DESC_NULLS_LAST: SortDirection.ASC_NULLS_FIRST,
}


class CursorDirection(StrEnum):
    """Which side of the cursor a page is read from."""

    AFTER = "after"
    BEFORE = "before"


@dataclass(frozen=True, slots=True)
class OrderField:
    """One component of an order specification.

    Attributes:
        direction: Sort direction.
        token: ``field`` or ``field@assoc[@nested]`` addressing a column
            through the join graph. ``None`` for expression items.
        expression: Raw SQL expression to order by (offset pagination only).
    """

    direction: SortDirection
    token: str | None = None
    expression: Any = field(default=None, compare=False)

    @property
    def is_token(self) -> bool:
        return self.token is not None

    def reversed(self) -> OrderField:
        return OrderField(self.direction.reversed(), self.token, self.expression)

    def describe(self) -> str:
        target = self.token if self.token is not None else str(self.expression)
        return f"{self.direction.value}:{target}"


OrderSpec = tuple[OrderField, ...]


def coerce_order_item(item: Any) -> OrderField:
    """Turn a user supplied order item into an ``OrderField``.

    Accepted shapes: an ``OrderField``, a ``(direction, field)`` pair or a bare
    field (ascending). ``field`` is a token string or a SQLAlchemy expression.

    Raises:
        UnsupportedOrderFieldError: On unknown directions or field types.
    """
    if isinstance(item, OrderField):
        return item

    if isinstance(item, tuple) and len(item) == 2:
        raw_direction, target = item
    else:
        raw_direction, target = SortDirection.ASC, item

    try:
        direction = SortDirection(raw_direction)
    except ValueError:
        raise UnsupportedOrderFieldError(
            f"unsupported order direction {raw_direction!r}; expected one of "
            f"{[d.value for d in SortDirection]}",
            field=target,
        ) from None

    if isinstance(target, str):
        if not target or any(part == "" for part in target.split("@")):
            raise UnsupportedOrderFieldError(
                "order tokens must look like 'field' or 'field@assoc'", field=target
            )
        return OrderField(direction, token=target)

    if hasattr(target, "__clause_element__") or hasattr(target, "_order_by_label_element"):
        return OrderField(direction, expression=target)

    raise UnsupportedOrderFieldError(
        f"unsupported order field type {type(target).__name__}; use a token string "
        "or a SQLAlchemy column expression",
        field=target,
    )


def normalize_order(
    requested: Iterable[OrderField],
    primary_key: Sequence[str],
    *,
    model_name: str = "root",
) -> OrderSpec:
    """Make the order a strict total order.

    Args:
        requested: Order fields in priority order (may be empty).
        primary_key: Root primary-key attribute names.
        model_name: Used in the error message when there is no primary key.

    Returns:
        Requested fields without duplicate tokens, followed by every primary
        key field not already present, ascending.

    Raises:
        NoPrimaryKeyError: If ``primary_key`` is empty.
    """
    if not primary_key:
        raise NoPrimaryKeyError(model_name)

    seen: set[str] = set()
    normalized: list[OrderField] = []
    for order_field in requested:
        if order_field.token is not None:
            if order_field.token in seen:
                continue
            seen.add(order_field.token)
        normalized.append(order_field)

    for pk_field in primary_key:
        if pk_field not in seen:
            seen.add(pk_field)
            normalized.append(OrderField(SortDirection.ASC, pk_field))

    return tuple(normalized)


def ensure_cursorable(order: OrderSpec) -> None:
    """Reject order items that cannot be captured in a cursor.

    Raises:
        UnsupportedOrderFieldError: If any item is a raw expression.
    """
    for order_field in order:
        if not order_field.is_token:
            raise UnsupportedOrderFieldError(
                "cursor pagination requires token order fields (e.g. 'title' or "
                "'name@author'); use offset pagination to order by expressions",
                field=order_field.expression,
            )


def ensure_no_base_order(statement: Select[Any]) -> None:
    """Reject statements that already carry ``ORDER BY``.

    Raises:
        ConflictingBaseOrderError: If the statement has order clauses.
    """
    clauses = getattr(statement, "_order_by_clauses", ())
    if clauses:
        raise ConflictingBaseOrderError([str(clause) for clause in clauses])


def reverse_order(order: OrderSpec) -> OrderSpec:
    """Invert every direction component-wise."""
    return tuple(order_field.reversed() for order_field in order)


def order_tokens(order: OrderSpec) -> list[str]:
    """Tokens of the order specification, in order."""
    return [order_field.token for order_field in order if order_field.token is not None]


__all__ = [
    "CursorDirection",
    "OrderField",
    "OrderSpec",
    "SortDirection",
    "coerce_order_item",
    "ensure_cursorable",
    "ensure_no_base_order",
    "normalize_order",
    "order_tokens",
    "reverse_order",
]
