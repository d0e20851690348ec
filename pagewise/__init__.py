"""pagewise: safe, stable pagination for SQLAlchemy queries.

    from sqlalchemy import select
    from pagewise import ComposedQuery, paginate_cursor

    query = ComposedQuery(Article, select(Article)).order_by(("desc", "published_at"))
    page = await paginate_cursor(session, query, page_size=20)
"""

from pagewise.core.exceptions import (
    CursorError,
    CursorOrderMismatchError,
    MalformedCursorError,
    MissingPageEntryError,
    NonUniqueRootsError,
    OversizedCursorError,
    PaginationConfigurationError,
    PaginationError,
)
from pagewise.core.pagination import (
    CursorCodec,
    CursorDirection,
    CursorPage,
    OffsetPage,
    SortDirection,
    Strategy,
    paginate_cursor,
    paginate_offset,
)
from pagewise.core.query import ComposedQuery

__version__ = "0.1.0"

__all__ = [
    "ComposedQuery",
    "CursorCodec",
    "CursorDirection",
    "CursorError",
    "CursorOrderMismatchError",
    "CursorPage",
    "MalformedCursorError",
    "MissingPageEntryError",
    "NonUniqueRootsError",
    "OffsetPage",
    "OversizedCursorError",
    "PaginationConfigurationError",
    "PaginationError",
    "SortDirection",
    "Strategy",
    "__version__",
    "paginate_cursor",
    "paginate_offset",
]
