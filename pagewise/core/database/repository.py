"""Per-model pagination repository.

A thin convenience over ``paginate_cursor`` / ``paginate_offset`` with an
explicit session. For queries it does not cover, compose a ``ComposedQuery``
and call the paginator directly.

Example:
    from pagewise.core.database.repository import PaginatedRepository

    class ArticleRepository(PaginatedRepository[Article]):
        def published(self) -> ComposedQuery:
            return self.query().where(Article.published.is_(True))

    repo = ArticleRepository(Article)
    page = await repo.paginate_cursor(
        session,
        repo.published().order_by(("desc", "published_at")),
        page_size=20,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pagewise.core.exceptions import NonUniqueRootsError, PaginationConfigurationError
from pagewise.core.pagination.order import CursorDirection
from pagewise.core.pagination.paginator import paginate_cursor, paginate_offset
from pagewise.core.query.composed import ComposedQuery
from pagewise.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy.ext.asyncio import AsyncSession

    from pagewise.core.pagination.schemas import CursorPage, OffsetPage


T = TypeVar("T")


class PaginatedRepository(Generic[T]):
    """Generic repository exposing paginated reads of one model.

    Provides:
        - query(statement, options) -> ComposedQuery
        - paginate_cursor(session, query, ...) -> CursorPage[T]
        - paginate_offset(session, query, ...) -> OffsetPage[T]

    Session is always explicit - no hidden state.
    """

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        """Initialize repository with model class.

        Args:
            model: SQLAlchemy model class (e.g., Article)
        """
        self.model = model
        self._logger = logging.getLogger(f"pagewise.repository.{model.__name__}")
        self._lazy = get_lazy_logger(f"pagewise.repository.{model.__name__}")

    def query(self, statement: Any = None, *, options: Iterable[Any] = ()) -> ComposedQuery:
        """Start a composed query on this model.

        Args:
            statement: Base ``select(model)``; defaults to selecting everything.
            options: Loader options that belong to the base query.
        """
        return ComposedQuery(self.model, statement, options=options)

    def _resolve_query(self, query: ComposedQuery | None) -> ComposedQuery:
        if query is None:
            return self.query()
        if query.model is not self.model:
            raise PaginationConfigurationError(
                f"{type(self).__name__} paginates {self.model.__name__}, "
                f"got a query on {query.model.__name__}"
            )
        return query

    async def paginate_cursor(
        self,
        session: AsyncSession,
        query: ComposedQuery | None = None,
        *,
        page_size: int | None = None,
        max_page_size: int | None = None,
        cursor: str | Mapping[str, Any] | None = None,
        direction: CursorDirection | str = CursorDirection.AFTER,
    ) -> CursorPage[T]:
        """Cursor page of this model.

        Args:
            session: Database session
            query: Composed query on this model (defaults to all rows)
            page_size: Page size (default from settings)
            max_page_size: Page size ceiling (default from settings)
            cursor: Cursor from a previous page
            direction: "after" or "before"

        Returns:
            CursorPage of entities
        """
        try:
            page = await paginate_cursor(
                session,
                self._resolve_query(query),
                page_size=page_size,
                max_page_size=max_page_size,
                cursor=cursor,
                direction=direction,
            )
        except NonUniqueRootsError as e:
            self._log_non_unique(e, "db.paginate_cursor")
            raise
        self._lazy.debug(
            lambda: f"db.paginate_cursor: {self.model.__name__} -> {len(page.entries)} entries "
            f"(has_more={page.has_more}, direction={page.direction})"
        )
        return page

    async def paginate_offset(
        self,
        session: AsyncSession,
        query: ComposedQuery | None = None,
        *,
        page_size: int | None = None,
        max_page_size: int | None = None,
        offset: int = 0,
    ) -> OffsetPage[T]:
        """Offset page of this model."""
        try:
            page = await paginate_offset(
                session,
                self._resolve_query(query),
                page_size=page_size,
                max_page_size=max_page_size,
                offset=offset,
            )
        except NonUniqueRootsError as e:
            self._log_non_unique(e, "db.paginate_offset")
            raise
        self._lazy.debug(
            lambda: f"db.paginate_offset: {self.model.__name__} offset={offset} -> "
            f"{len(page.entries)} entries (has_more={page.has_more})"
        )
        return page

    def _log_non_unique(self, error: NonUniqueRootsError, operation: str) -> None:
        self._logger.warning(
            "Page roots were not unique",
            extra={
                "entity": self.model.__name__,
                "order_by": error.order_by,
                "operation": operation,
            },
        )


__all__ = ["PaginatedRepository"]
