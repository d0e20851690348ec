"""Helpers shared by the cursor strategies and the offset executor."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import and_, or_, select

from pagewise.core.exceptions import (
    InvalidPageSizeError,
    NonUniqueRootsError,
)
from pagewise.core.pagination.order import CursorDirection

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


def resolve_page_size(page_size: Any, max_page_size: Any = None) -> int:
    """Validate the requested page size and apply the ceiling.

    Raises:
        InvalidPageSizeError: If either value is not a positive integer.
    """
    if not _is_positive_int(page_size):
        raise InvalidPageSizeError("page_size", page_size)
    if max_page_size is None:
        return page_size
    if not _is_positive_int(max_page_size):
        raise InvalidPageSizeError("max_page_size", max_page_size)
    return min(max_page_size, page_size)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def split_page_rows(
    rows: Sequence[T], page_size: int, direction: CursorDirection
) -> tuple[list[T], bool]:
    """Trim an over-fetched cursor page back to ``page_size`` rows.

    ``before`` pages are queried in reversed order, so their rows are put
    back into forward order first and the extra row is dropped from the head.

    Returns:
        Tuple of (rows in forward order, has_more)
    """
    ordered = list(reversed(rows)) if direction is CursorDirection.BEFORE else list(rows)
    has_more = len(ordered) == page_size + 1
    if has_more:
        ordered = ordered[1:] if direction is CursorDirection.BEFORE else ordered[:-1]
    return ordered, has_more


def split_offset_rows(rows: Sequence[T], page_size: int) -> tuple[list[T], bool]:
    """Trim an over-fetched offset page; the extra row is always the last."""
    has_more = len(rows) == page_size + 1
    return (list(rows[:-1]) if has_more else list(rows)), has_more


def entity_key(entity: Any, primary_key: Sequence[str]) -> Any:
    """Primary key of a root entity: a scalar, or a tuple for composite keys."""
    if len(primary_key) == 1:
        return getattr(entity, primary_key[0])
    return tuple(getattr(entity, name) for name in primary_key)


def row_key(values: dict[str, Any], primary_key: Sequence[str]) -> Any:
    """Primary key taken from a projected row mapping."""
    if len(primary_key) == 1:
        return values[primary_key[0]]
    return tuple(values[name] for name in primary_key)


def ensure_unique_keys(keys: Sequence[Any], order_by: Iterable[str]) -> None:
    """Raise if a page of root keys contains duplicates.

    Raises:
        NonUniqueRootsError: Naming the order specification.
    """
    if len(keys) != len(set(keys)):
        raise NonUniqueRootsError(list(order_by))


def key_criteria(model: type[Any], primary_key: Sequence[str], keys: Sequence[Any]) -> Any:
    """``pk IN keys``, or an OR of per-key ANDs for composite keys."""
    if len(primary_key) == 1:
        return getattr(model, primary_key[0]).in_(keys)
    columns = [getattr(model, name) for name in primary_key]
    return or_(
        *(and_(*(column == value for column, value in zip(columns, key, strict=True))) for key in keys)
    )


async def apply_deferred_eager_loads(
    session: AsyncSession,
    model: type[Any],
    primary_key: Sequence[str],
    entries: list[T],
    options: Sequence[Any],
) -> list[T]:
    """Run separate eager-loads for the entries of a page.

    The entries are already in the session's identity map, so re-selecting
    them by key with the loader options fills their unloaded associations in
    place.
    """
    if not entries or not options:
        return entries
    keys = [entity_key(entry, primary_key) for entry in entries]
    statement = select(model).where(key_criteria(model, primary_key, keys)).options(*options)
    result = await session.execute(statement)
    result.scalars().all()
    return entries


__all__ = [
    "apply_deferred_eager_loads",
    "ensure_unique_keys",
    "entity_key",
    "key_criteria",
    "resolve_page_size",
    "row_key",
    "split_offset_rows",
    "split_page_rows",
]
