"""Cursor-projection strategy.

Used when every join is to-one but some order value lives on a joined
association that is not loaded onto the entities. The order columns are
selected next to the root entity so the cursor can be built from the row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pagewise.core.exceptions import PaginationError
from pagewise.core.pagination.strategies.base import PageRows
from pagewise.core.pagination.utils import (
    apply_deferred_eager_loads,
    ensure_unique_keys,
    entity_key,
    split_page_rows,
)
from pagewise.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pagewise.core.pagination.plan import PaginationPlan

_lazy = get_lazy_logger(__name__)

LABEL_PREFIX = "__pagewise_cursor_"


async def run(plan: PaginationPlan, session: AsyncSession) -> PageRows:
    if plan.immediate_options:
        raise PaginationError("cursor projection cannot be combined with through-join eager-loads")

    tokens = list(plan.cursor_columns)
    labels = [
        plan.cursor_columns[token].label(f"{LABEL_PREFIX}{index}") for index, token in enumerate(tokens)
    ]
    result = await session.execute(plan.statement.add_columns(*labels))
    rows_all = [(row[0], dict(zip(tokens, row[1:], strict=True))) for row in result.all()]

    ensure_unique_keys(
        [entity_key(entity, plan.primary_key) for entity, _values in rows_all],
        [item.describe() for item in plan.order],
    )

    rows, has_more = split_page_rows(rows_all, plan.page_size, plan.direction)
    _lazy.debug(lambda: f"cursor_projection: fetched {len(rows_all)} rows, page of {len(rows)}")

    entries = await apply_deferred_eager_loads(
        session,
        plan.model,
        plan.primary_key,
        [entity for entity, _values in rows],
        plan.deferred_options,
    )

    if not rows:
        return PageRows(entries, has_more)
    return PageRows(entries, has_more, rows[0][1], rows[-1][1])
