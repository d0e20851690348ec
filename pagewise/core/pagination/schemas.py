"""Pagination response schemas.

Two page shapes share the same entries contract:

1. ``CursorPage``: keyset pagination with opaque boundary cursors.
   - ``cursor_after`` continues forward from the last entry
   - ``cursor_before`` continues backward from the first entry
   - ``has_more`` tells whether rows exist beyond the page in the
     requested direction

2. ``OffsetPage``: offset pagination. Only ``has_more`` is reported; there
   is no total count.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from pagewise.core.pagination.order import CursorDirection

T = TypeVar("T")


class CursorPage(BaseModel, Generic[T]):
    """One page of cursor pagination.

    Usage:
        page = await paginate_cursor(session, query, page_size=20)
        next_page = await paginate_cursor(
            session, query, page_size=20, cursor=page.cursor_after
        )
        previous_page = await paginate_cursor(
            session, query, page_size=20, cursor=page.cursor_before, direction="before"
        )

    Attributes:
        entries: Root entities in forward order
        has_more: Whether more rows exist in the requested direction
        cursor_before: Cursor of the first entry (None if the page is empty)
        cursor_after: Cursor of the last entry (None if the page is empty)
        page_size: Effective page size after applying the ceiling
        direction: Direction the page was read in
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    entries: list[T] = Field(
        default_factory=list,
        description="Page entries",
    )
    has_more: bool = Field(
        default=False,
        description="Whether more entries exist in the requested direction",
    )
    cursor_before: str | None = Field(
        default=None,
        description="Cursor to fetch the entries before this page",
    )
    cursor_after: str | None = Field(
        default=None,
        description="Cursor to fetch the entries after this page",
    )
    page_size: int = Field(
        ge=1,
        description="Effective page size",
    )
    direction: CursorDirection = Field(
        default=CursorDirection.AFTER,
        description="Direction the page was read in",
    )


class OffsetPage(BaseModel, Generic[T]):
    """One page of offset pagination.

    Attributes:
        entries: Root entities in order
        has_more: Whether more entries exist after this page
        page_size: Effective page size after applying the ceiling
        offset: Number of root entities skipped
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    entries: list[T] = Field(
        default_factory=list,
        description="Page entries",
    )
    has_more: bool = Field(
        default=False,
        description="Whether more entries exist",
    )
    page_size: int = Field(
        ge=1,
        description="Effective page size",
    )
    offset: int = Field(
        default=0,
        ge=0,
        description="Number of entries skipped",
    )

    @property
    def next_offset(self) -> int | None:
        """Offset of the following page, ``None`` on the last page."""
        return self.offset + len(self.entries) if self.has_more else None


__all__ = ["CursorPage", "OffsetPage"]
