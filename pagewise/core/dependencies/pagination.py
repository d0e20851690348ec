"""Pagination dependencies for FastAPI routes.

Parse page parameters from the query string and apply the configured
ceiling, so route handlers can pass them straight to the paginator.

Usage:
    from pagewise.core.dependencies.pagination import CursorPagination

    @router.get("/articles")
    async def list_articles(
        pagination: CursorPagination,
        session: AsyncSession = Depends(get_session),
    ) -> dict:
        page = await paginate_cursor(
            session,
            query,
            page_size=pagination.page_size,
            cursor=pagination.cursor,
            direction=pagination.direction,
        )
        ...

Cursor errors are raised by the paginator, not here; map ``CursorError`` to
a 400 response in the application.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Query
from pydantic import BaseModel, Field

from pagewise.core.pagination.order import CursorDirection
from pagewise.core.settings import get_pagination_settings


class CursorPaginationParams(BaseModel):
    """Cursor pagination parameters.

    Attributes:
        page_size: Effective page size after applying the ceiling.
        cursor: Cursor from a previous page, ``None`` for the first page.
        direction: ``after`` or ``before``.
    """

    page_size: int = Field(ge=1, description="Maximum number of items to return")
    cursor: str | None = Field(default=None, description="Cursor from a previous page")
    direction: CursorDirection = Field(default=CursorDirection.AFTER, description="Page direction")

    model_config = {"frozen": True}


class OffsetPaginationParams(BaseModel):
    """Offset pagination parameters."""

    page_size: int = Field(ge=1, description="Maximum number of items to return")
    offset: int = Field(ge=0, default=0, description="Number of items to skip")

    model_config = {"frozen": True}


def _effective_page_size(page_size: int | None) -> int:
    settings = get_pagination_settings()
    if page_size is None:
        page_size = settings.default_page_size
    if settings.max_page_size is not None:
        page_size = min(page_size, settings.max_page_size)
    return page_size


def get_cursor_pagination(
    page_size: Annotated[
        int | None,
        Query(ge=1, description="Maximum number of items to return"),
    ] = None,
    cursor: Annotated[
        str | None,
        Query(min_length=1, description="Cursor from a previous page"),
    ] = None,
    direction: Annotated[
        CursorDirection,
        Query(description="Read the page after or before the cursor"),
    ] = CursorDirection.AFTER,
) -> CursorPaginationParams:
    """Get cursor pagination parameters.

    Args:
        page_size: Requested page size (default and ceiling from settings).
        cursor: Cursor from a previous page.
        direction: ``after`` (default) or ``before``.

    Returns:
        CursorPaginationParams with the capped page size.
    """
    return CursorPaginationParams(
        page_size=_effective_page_size(page_size),
        cursor=cursor,
        direction=direction,
    )


def get_offset_pagination(
    page_size: Annotated[
        int | None,
        Query(ge=1, description="Maximum number of items to return"),
    ] = None,
    offset: Annotated[
        int,
        Query(ge=0, description="Number of items to skip"),
    ] = 0,
) -> OffsetPaginationParams:
    """Get offset pagination parameters.

    Args:
        page_size: Requested page size (default and ceiling from settings).
        offset: Items to skip.

    Returns:
        OffsetPaginationParams with the capped page size.
    """
    return OffsetPaginationParams(page_size=_effective_page_size(page_size), offset=offset)


# Type aliases for cleaner route signatures
CursorPagination = Annotated[CursorPaginationParams, Depends(get_cursor_pagination)]
OffsetPagination = Annotated[OffsetPaginationParams, Depends(get_offset_pagination)]
