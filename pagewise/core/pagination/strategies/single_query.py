"""Single-query strategy.

Used when every join is to-one and every order value can be read off the
returned entities. The page statement runs as-is with ``LIMIT page_size + 1``;
separate eager-loads run once the page is known.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect as sa_inspect

from pagewise.core.exceptions import PaginationError
from pagewise.core.pagination.strategies.base import PageRows
from pagewise.core.pagination.utils import apply_deferred_eager_loads, split_page_rows
from pagewise.core.query.join_graph import split_token
from pagewise.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from pagewise.core.pagination.plan import PaginationPlan

_lazy = get_lazy_logger(__name__)


async def run(plan: PaginationPlan, session: AsyncSession) -> PageRows:
    options = [*plan.base_options, *plan.immediate_options]
    deferred: Sequence[Any] = plan.deferred_options
    if plan.shape.has_base_eager_loads:
        options.extend(deferred)
        deferred = ()

    statement = plan.statement.options(*options) if options else plan.statement
    result = await session.execute(statement)
    rows = result.scalars().all()

    entries, has_more = split_page_rows(rows, plan.page_size, plan.direction)
    _lazy.debug(lambda: f"single_query: fetched {len(rows)} rows, page of {len(entries)}")

    entries = await apply_deferred_eager_loads(
        session, plan.model, plan.primary_key, entries, deferred
    )

    if not entries:
        return PageRows(entries, has_more)
    return PageRows(
        entries,
        has_more,
        cursor_values_from_entity(entries[0], plan.tokens),
        cursor_values_from_entity(entries[-1], plan.tokens),
    )


def cursor_values_from_entity(entity: Any, tokens: Sequence[str]) -> dict[str, Any]:
    """Read each token's value off a loaded root entity."""
    return {token: _value_from_entity(entity, token) for token in tokens}


def _value_from_entity(entity: Any, token: str) -> Any:
    field_name, assoc = split_token(token)
    if not assoc:
        return getattr(entity, field_name)

    name = assoc[0]
    if name in sa_inspect(entity).unloaded:
        raise PaginationError(
            f"expected association {name!r} to be loaded to read cursor field {token!r}",
            details={"token": token},
        )
    related = getattr(entity, name)
    return None if related is None else getattr(related, field_name)
