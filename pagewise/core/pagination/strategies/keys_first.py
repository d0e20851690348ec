"""Keys-first strategy.

Works for any join shape. A ``DISTINCT`` projection of the order columns
(which always include the primary key) picks the page over the full join
graph; the entities are then loaded by key in a second query.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pagewise.core.pagination.loader import load_entries_for_page
from pagewise.core.pagination.strategies.base import PageRows
from pagewise.core.pagination.utils import ensure_unique_keys, row_key, split_page_rows
from pagewise.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pagewise.core.pagination.plan import PaginationPlan

_lazy = get_lazy_logger(__name__)

LABEL_PREFIX = "__pagewise_key_"


async def run(plan: PaginationPlan, session: AsyncSession) -> PageRows:
    tokens = list(plan.cursor_columns)
    labels = [
        plan.cursor_columns[token].label(f"{LABEL_PREFIX}{index}") for index, token in enumerate(tokens)
    ]
    key_statement = plan.statement.with_only_columns(*labels, maintain_column_froms=True).distinct()

    result = await session.execute(key_statement)
    key_rows_all = [dict(zip(tokens, row, strict=True)) for row in result.all()]

    ensure_unique_keys(
        [row_key(values, plan.primary_key) for values in key_rows_all],
        [item.describe() for item in plan.order],
    )

    key_rows, has_more = split_page_rows(key_rows_all, plan.page_size, plan.direction)
    keys = [row_key(values, plan.primary_key) for values in key_rows]
    _lazy.debug(lambda: f"keys_first: fetched {len(key_rows_all)} key rows, page of {len(keys)}")

    keep_joins = plan.shape.has_through_join_eager_loads
    options = [*plan.base_options, *plan.deferred_options]
    if keep_joins:
        options.extend(plan.immediate_options)

    entries = await load_entries_for_page(
        session,
        plan.model,
        plan.primary_key,
        keys,
        filtered_statement=plan.filtered_statement,
        keep_joins=keep_joins,
        options=options,
    )

    if not key_rows:
        return PageRows(entries, has_more)
    return PageRows(entries, has_more, key_rows[0], key_rows[-1])
