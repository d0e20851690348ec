"""FastAPI dependencies."""

from pagewise.core.dependencies.pagination import (
    CursorPagination,
    CursorPaginationParams,
    OffsetPagination,
    OffsetPaginationParams,
    get_cursor_pagination,
    get_offset_pagination,
)

__all__ = [
    "CursorPagination",
    "CursorPaginationParams",
    "OffsetPagination",
    "OffsetPaginationParams",
    "get_cursor_pagination",
    "get_offset_pagination",
]
