"""Paginated reads over composed queries.

Cursor pagination:
    page = await paginate_cursor(session, query, page_size=20)
    while page.has_more:
        page = await paginate_cursor(session, query, page_size=20, cursor=page.cursor_after)

Offset pagination:
    page = await paginate_offset(session, query, page_size=20, offset=40)

Both entry points validate the request, classify the join shape of the query
and pick the cheapest way to return a page of unique root entities. Each call
uses its own token cache; nothing is shared between calls.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pagewise.core.exceptions import CursorError
from pagewise.core.pagination.cursor import CursorCodec
from pagewise.core.pagination.offset import run_offset, validate_offset
from pagewise.core.pagination.order import CursorDirection
from pagewise.core.pagination.plan import build_cursor_plan
from pagewise.core.pagination.schemas import CursorPage, OffsetPage
from pagewise.core.pagination.strategies import cursor_projection, keys_first, single_query
from pagewise.core.pagination.strategy import Strategy
from pagewise.core.pagination.utils import resolve_page_size
from pagewise.core.query.join_graph import TokenCache
from pagewise.core.settings import get_pagination_settings
from pagewise.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from sqlalchemy.ext.asyncio import AsyncSession

    from pagewise.core.database.dialects import NullOrdering
    from pagewise.core.pagination.plan import PaginationPlan
    from pagewise.core.pagination.strategies import PageRows
    from pagewise.core.query.composed import ComposedQuery

logger = logging.getLogger(__name__)
_lazy = get_lazy_logger(__name__)

_STRATEGIES: dict[Strategy, Callable[[PaginationPlan, AsyncSession], Awaitable[PageRows]]] = {
    Strategy.SINGLE_QUERY: single_query.run,
    Strategy.CURSOR_PROJECTION: cursor_projection.run,
    Strategy.KEYS_FIRST: keys_first.run,
}


async def paginate_cursor(
    session: AsyncSession,
    query: ComposedQuery,
    *,
    page_size: int | None = None,
    max_page_size: int | None = None,
    cursor: str | Mapping[str, Any] | None = None,
    direction: CursorDirection | str = CursorDirection.AFTER,
    null_ordering: NullOrdering | None = None,
    codec: CursorCodec | None = None,
) -> CursorPage[Any]:
    """Return one cursor page of root entities.

    Args:
        session: Database session.
        query: Composed query (filters, joins, order, eager-loads).
        page_size: Positive page size; defaults to
            ``PaginationSettings.default_page_size``.
        max_page_size: Ceiling for ``page_size``; defaults to
            ``PaginationSettings.max_page_size``.
        cursor: Cursor from a previous page (string or mapping); omit for
            the first page.
        direction: ``"after"`` to read past the cursor, ``"before"`` to read
            the page preceding it.
        null_ordering: Override of the backend NULL placement lookup.
        codec: Cursor codec; defaults to one limited by
            ``PaginationSettings.max_cursor_bytes``.

    Returns:
        CursorPage with entries in forward order and boundary cursors.

    Raises:
        PaginationConfigurationError: If the request or query is invalid.
        CursorError: If the cursor is malformed or built for another order.
        NonUniqueRootsError: If the order depends on a to-many join.
    """
    settings = get_pagination_settings()
    if page_size is None:
        page_size = settings.default_page_size
    if max_page_size is None:
        max_page_size = settings.max_page_size
    if codec is None:
        codec = CursorCodec(settings.max_cursor_bytes)

    try:
        plan = build_cursor_plan(
            session,
            query,
            page_size=page_size,
            max_page_size=max_page_size,
            cursor=cursor,
            direction=direction,
            codec=codec,
            null_ordering=null_ordering,
            cache=TokenCache(),
        )
    except CursorError as e:
        logger.info(
            "Rejected pagination cursor",
            extra={
                "model": query.model.__name__,
                "cursor_error": type(e).__name__,
                "cursor_error_details": e.details,
            },
        )
        raise

    _lazy.debug(lambda: f"paginate_cursor: {query.model.__name__} {plan.describe()}")
    rows = await _STRATEGIES[plan.strategy](plan, session)

    return CursorPage(
        entries=rows.entries,
        has_more=rows.has_more,
        cursor_before=codec.encode(rows.first_values) if rows.first_values is not None else None,
        cursor_after=codec.encode(rows.last_values) if rows.last_values is not None else None,
        page_size=plan.page_size,
        direction=plan.direction,
    )


async def paginate_offset(
    session: AsyncSession,
    query: ComposedQuery,
    *,
    page_size: int | None = None,
    max_page_size: int | None = None,
    offset: int = 0,
) -> OffsetPage[Any]:
    """Return one offset page of root entities.

    Args:
        session: Database session.
        query: Composed query; order items may be SQLAlchemy expressions.
        page_size: Positive page size; defaults to
            ``PaginationSettings.default_page_size``.
        max_page_size: Ceiling for ``page_size``; defaults to
            ``PaginationSettings.max_page_size``.
        offset: Number of root entities to skip.

    Returns:
        OffsetPage with entries and ``has_more``.

    Raises:
        PaginationConfigurationError: If the request or query is invalid.
        NonUniqueRootsError: If the order depends on a to-many join.
    """
    settings = get_pagination_settings()
    if page_size is None:
        page_size = settings.default_page_size
    if max_page_size is None:
        max_page_size = settings.max_page_size

    page_size = resolve_page_size(page_size, max_page_size)
    offset = validate_offset(offset)

    rows = await run_offset(session, query, page_size=page_size, offset=offset, cache=TokenCache())
    _lazy.debug(
        lambda: f"paginate_offset: {query.model.__name__} offset={offset} "
        f"page={len(rows.entries)} safe={rows.unique_roots_safe}"
    )
    return OffsetPage(entries=rows.entries, has_more=rows.has_more, page_size=page_size, offset=offset)


__all__ = ["paginate_cursor", "paginate_offset"]
