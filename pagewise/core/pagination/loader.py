"""Second phase of keys-first pagination: load root entities by key."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from pagewise.core.exceptions import MissingPageEntryError
from pagewise.core.pagination.utils import entity_key, key_criteria
from pagewise.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

_lazy = get_lazy_logger(__name__)


async def load_entries_for_page(
    session: AsyncSession,
    model: type[Any],
    primary_key: Sequence[str],
    keys: Sequence[Any],
    *,
    filtered_statement: Any = None,
    keep_joins: bool = False,
    options: Sequence[Any] = (),
) -> list[Any]:
    """Load the root entities for ``keys``, in the order of ``keys``.

    The key query already decided membership and order, so the reload
    normally selects straight from the root table. Through-join eager-loads
    need the joined rows to hydrate their associations; with ``keep_joins``
    the reload keeps ``filtered_statement`` (joins and filters, no order or
    limit) instead.

    Args:
        session: Database session.
        model: Root mapped class.
        primary_key: Root primary-key attribute names.
        keys: Page keys in page order (tuples for composite keys).
        filtered_statement: Statement to keep when ``keep_joins`` is set.
        keep_joins: Keep the join graph and filters.
        options: Loader options for the reload.

    Returns:
        One entity per key, in key order.

    Raises:
        MissingPageEntryError: If a key has no matching row.
    """
    if not keys:
        return []

    if keep_joins and filtered_statement is not None:
        statement = filtered_statement.limit(None).offset(None).order_by(None)
    else:
        statement = select(model)
    statement = statement.where(key_criteria(model, primary_key, keys))
    if options:
        statement = statement.options(*options)

    result = await session.execute(statement)
    loaded = result.unique().scalars().all()

    by_key: dict[Any, Any] = {}
    for entity in loaded:
        by_key.setdefault(entity_key(entity, primary_key), entity)
    _lazy.debug(lambda: f"load_entries_for_page: {len(keys)} keys, {len(by_key)} loaded")

    entries = []
    for key in keys:
        try:
            entries.append(by_key[key])
        except KeyError:
            raise MissingPageEntryError(model.__name__, key) from None
    return entries


__all__ = ["load_entries_for_page"]
