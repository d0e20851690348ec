"""Keyset filter for SQLAlchemy queries.

The KeysetFilter implements the seek method of cursor pagination:
- Instead of OFFSET, a WHERE clause seeks directly past the cursor position
- Results are stable even when rows are inserted or deleted between pages

How it works:
    For ORDER BY published_at DESC, id ASC with cursor at (t1, id1):
    WHERE (published_at < t1) OR (published_at = t1 AND id > id1)

NULLs sort first or last depending on the direction and the backend, so a
NULL-aware branch is added per field:
    cursor value NULL, NULLs first → field IS NOT NULL
    cursor value NULL, NULLs last  → no branch (nothing sorts after NULL)
    cursor value set,  NULLs last  → extra branch field IS NULL
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import and_, false, or_
from sqlalchemy.sql import sqltypes

from pagewise.core.database.dialects import NullOrdering, NullPosition
from pagewise.core.exceptions import MalformedCursorError

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.sql.elements import ColumnElement

    from pagewise.core.pagination.order import SortDirection


class StatementFilter(ABC):
    """Base class for statement filters.

    All filters implement `apply()` which modifies a SQLAlchemy statement.
    """

    @abstractmethod
    def apply(self, statement: Select[Any]) -> Select[Any]:
        """Apply filter to statement.

        Args:
            statement: SQLAlchemy select statement

        Returns:
            Modified select statement
        """
        ...


@dataclass(frozen=True, slots=True)
class KeysetField:
    """An order field paired with the column it resolves to."""

    token: str
    column: Any
    direction: SortDirection


class KeysetFilter(StatementFilter):
    """Seek past a cursor position.

    Example:
        stmt = KeysetFilter(
            fields=[
                KeysetField("published_at", Article.published_at, SortDirection.DESC),
                KeysetField("id", Article.id, SortDirection.ASC),
            ],
            cursor={"published_at": "2025-01-15T10:30:00", "id": 42},
            null_ordering=NullOrdering("sqlite"),
        ).apply(stmt)

    Attributes:
        fields: Order fields in priority order, already reversed for
            ``before`` pages.
        cursor: Decoded cursor values keyed by token.
        null_ordering: Backend NULL placement for directions without an
            explicit ``*_nulls_*`` suffix.
    """

    def __init__(
        self,
        fields: Sequence[KeysetField],
        cursor: Mapping[str, Any],
        null_ordering: NullOrdering,
    ) -> None:
        self.fields = list(fields)
        self.cursor = cursor
        self.null_ordering = null_ordering

    def apply(self, statement: Select[Any]) -> Select[Any]:
        """Add the seek predicate to ``statement``."""
        return statement.where(self.condition())

    def condition(self) -> ColumnElement[bool]:
        """Disjunction of one conjunction per branch; ``false()`` if none."""
        branches: list[ColumnElement[bool]] = []
        previous: list[ColumnElement[bool]] = []

        for keyset_field in self.fields:
            column = keyset_field.column
            try:
                value = convert_cursor_value(column, self.cursor[keyset_field.token])
            except ValueError as e:
                raise MalformedCursorError(
                    f"cursor value for {keyset_field.token!r} does not match the column type",
                    details={"token": keyset_field.token, "reason": str(e)},
                ) from e
            base, nulls = keyset_field.direction.effective(self.null_ordering)

            if value is None:
                if nulls is NullPosition.FIRST:
                    branches.append(and_(*previous, column.is_not(None)))
            else:
                past = column > value if base == "asc" else column < value
                branches.append(and_(*previous, past))
                if nulls is NullPosition.LAST:
                    branches.append(and_(*previous, column.is_(None)))

            previous.append(column.is_(None) if value is None else column == value)

        if not branches:
            return false()
        return or_(*branches)


def convert_cursor_value(column: Any, value: Any) -> Any:
    """Convert a JSON cursor value back to the column's Python type.

    Handles datetime, date, UUID and Decimal values that were written as
    strings when the cursor was encoded, and enum values written as the
    member's value.

    Raises:
        ValueError: If the value does not fit the column type.
    """
    if value is None:
        return value

    column_type = getattr(column, "type", None)
    if not isinstance(column_type, sqltypes.Enum):
        column_type = getattr(column_type, "impl_instance", column_type)

    if isinstance(column_type, sqltypes.Enum) and column_type.enum_class is not None:
        return column_type.enum_class(value)

    type_name = type(column_type).__name__
    if isinstance(value, str):
        if type_name in ("DateTime", "TIMESTAMP"):
            value = datetime.fromisoformat(value)
        elif type_name in ("Date", "DATE"):
            value = date.fromisoformat(value)
        elif type_name in ("Uuid", "UUID") and getattr(column_type, "as_uuid", True):
            value = UUID(value)

    if (
        type_name in ("Numeric", "NUMERIC", "DECIMAL")
        and getattr(column_type, "asdecimal", False)
        and isinstance(value, str | int | float)
        and not isinstance(value, bool)
    ):
        try:
            value = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"invalid decimal {value!r}") from e

    _check_python_type(column_type, value)
    return value


def _check_python_type(column_type: Any, value: Any) -> None:
    try:
        expected = column_type.python_type
    except (AttributeError, NotImplementedError):
        return

    if expected is bool:
        matches = isinstance(value, bool)
    elif expected in (float, Decimal):
        matches = isinstance(value, int | float | Decimal) and not isinstance(value, bool)
    elif expected is int:
        matches = isinstance(value, int) and not isinstance(value, bool)
    else:
        matches = isinstance(value, expected)

    if not matches:
        raise ValueError(f"expected {expected.__name__}, got {type(value).__name__}")


__all__ = ["KeysetField", "KeysetFilter", "StatementFilter", "convert_cursor_value"]
