"""Safe pagination over joined, filtered and sorted queries.

Cursor pagination:
    from pagewise.core.pagination import paginate_cursor

    page = await paginate_cursor(session, query, page_size=20)
    next_page = await paginate_cursor(session, query, page_size=20, cursor=page.cursor_after)

Offset pagination:
    from pagewise.core.pagination import paginate_offset

    page = await paginate_offset(session, query, page_size=20, offset=40)
"""

from pagewise.core.pagination.order import (
    CursorDirection,
    OrderField,
    OrderSpec,
    SortDirection,
    normalize_order,
    reverse_order,
)
from pagewise.core.pagination.cursor import CursorCodec
from pagewise.core.pagination.filters import KeysetField, KeysetFilter, StatementFilter
from pagewise.core.pagination.classifier import JoinShape, classify
from pagewise.core.pagination.strategy import Strategy, select_strategy
from pagewise.core.pagination.plan import PaginationPlan, build_cursor_plan
from pagewise.core.pagination.loader import load_entries_for_page
from pagewise.core.pagination.schemas import CursorPage, OffsetPage
from pagewise.core.pagination.paginator import paginate_cursor, paginate_offset

__all__ = [
    "CursorCodec",
    "CursorDirection",
    "CursorPage",
    "JoinShape",
    "KeysetField",
    "KeysetFilter",
    "OffsetPage",
    "OrderField",
    "OrderSpec",
    "PaginationPlan",
    "SortDirection",
    "StatementFilter",
    "Strategy",
    "build_cursor_plan",
    "classify",
    "load_entries_for_page",
    "normalize_order",
    "paginate_cursor",
    "paginate_offset",
    "reverse_order",
    "select_strategy",
]
