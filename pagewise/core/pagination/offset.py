"""Offset pagination.

Shares the join-shape classifier and the keys-first reload with cursor
pagination:

- to-one joins only: one statement with ``LIMIT page_size + 1 OFFSET n``,
  separate eager-loads applied afterwards
- anything else: a ``DISTINCT`` projection of the primary key and the order
  columns picks the page, then the entities are loaded by key

Offset pages accept SQLAlchemy expressions as order items and only report
``has_more``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pagewise.core.exceptions import InvalidOffsetError
from pagewise.core.pagination.classifier import only_to_one_joins
from pagewise.core.pagination.loader import load_entries_for_page
from pagewise.core.pagination.plan import prepare_query
from pagewise.core.pagination.utils import (
    apply_deferred_eager_loads,
    ensure_unique_keys,
    split_offset_rows,
)
from pagewise.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pagewise.core.query.composed import ComposedQuery
    from pagewise.core.query.join_graph import TokenCache

_lazy = get_lazy_logger(__name__)


@dataclass(slots=True)
class OffsetRows:
    entries: list[Any]
    has_more: bool
    unique_roots_safe: bool


def validate_offset(offset: Any) -> int:
    """Raises InvalidOffsetError unless ``offset`` is an integer ``>= 0``."""
    if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
        raise InvalidOffsetError(offset)
    return offset


async def run_offset(
    session: AsyncSession,
    query: ComposedQuery,
    *,
    page_size: int,
    offset: int,
    cache: TokenCache | None = None,
) -> OffsetRows:
    """Fetch one offset page of root entities.

    Args:
        session: Database session.
        query: Composed query.
        page_size: Validated page size.
        offset: Validated offset.
        cache: Per-call token cache.

    Raises:
        PaginationConfigurationError: If the query cannot be paginated.
        NonUniqueRootsError: If the order depends on a to-many join.
    """
    prepared = prepare_query(query, cache)
    graph = prepared.graph
    columns = query.order_columns(graph, prepared.order)

    filtered = query.filtered_statement(graph)
    order_clauses = [
        item.direction.apply(column) for item, column in zip(prepared.order, columns, strict=True)
    ]
    statement = filtered.order_by(*order_clauses).limit(page_size + 1).offset(offset)
    loaders = graph.loader_options()

    if only_to_one_joins(query, graph):
        options = [*query.options, *loaders.immediate]
        deferred = loaders.deferred
        if query.has_base_eager_loads:
            options.extend(deferred)
            deferred = ()
        result = await session.execute(statement.options(*options) if options else statement)
        rows = result.scalars().all()
        entries, has_more = split_offset_rows(rows, page_size)
        _lazy.debug(lambda: f"offset: single query fetched {len(rows)} rows at offset {offset}")
        entries = await apply_deferred_eager_loads(
            session, query.model, prepared.primary_key, entries, deferred
        )
        return OffsetRows(entries, has_more, True)

    primary_key = prepared.primary_key
    pk_labels = [
        getattr(query.model, name).label(f"__pagewise_pk_{index}") for index, name in enumerate(primary_key)
    ]
    order_labels = [column.label(f"__pagewise_order_{index}") for index, column in enumerate(columns)]
    key_statement = statement.with_only_columns(
        *pk_labels, *order_labels, maintain_column_froms=True
    ).distinct()

    result = await session.execute(key_statement)
    width = len(primary_key)
    keys_all = [row[0] if width == 1 else tuple(row[:width]) for row in result.all()]
    ensure_unique_keys(keys_all, [item.describe() for item in prepared.order])

    keys, has_more = split_offset_rows(keys_all, page_size)
    _lazy.debug(lambda: f"offset: key query fetched {len(keys_all)} keys at offset {offset}")

    keep_joins = graph.has_through_join_eager_loads
    options = [*query.options, *loaders.deferred]
    if keep_joins:
        options.extend(loaders.immediate)
    entries = await load_entries_for_page(
        session,
        query.model,
        primary_key,
        keys,
        filtered_statement=filtered,
        keep_joins=keep_joins,
        options=options,
    )
    return OffsetRows(entries, has_more, False)


__all__ = ["OffsetRows", "run_offset", "validate_offset"]
