"""Pytest configuration and shared fixtures.

Organization:
    - Settings Fixtures: isolated settings cache per test
    - Database Fixtures: in-memory SQLite engine, seeded data and sessions
    - Utility Fixtures: page traversal helpers
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pagewise.core.pagination import paginate_cursor
from pagewise.core.settings import clear_settings_cache
from tests.models import Base, seed_rows

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from pagewise.core.query import ComposedQuery


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def settings_cache(monkeypatch: pytest.MonkeyPatch):
    """Clear cached settings and pagination env vars around each test."""
    for name in (
        "PAGINATION_DEFAULT_PAGE_SIZE",
        "PAGINATION_MAX_PAGE_SIZE",
        "PAGINATION_MAX_CURSOR_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite and the test schema.

    Yields:
        Async SQLAlchemy engine connected to in-memory SQLite.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def seeded_engine(db_engine: AsyncEngine) -> AsyncEngine:
    """Engine whose database holds ``tests.models.seed_rows()``.

    Rows are written through a separate session so that sessions handed to
    tests start with an empty identity map.
    """
    async_session_maker = async_sessionmaker(db_engine, expire_on_commit=False)
    async with async_session_maker() as session:
        session.add_all(seed_rows())
        await session.commit()
    return db_engine


@pytest.fixture
async def db_session(seeded_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session over the seeded database.

    Yields:
        Async database session for testing.
    """
    async_session_maker = async_sessionmaker(seeded_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
async def empty_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session over an empty database with the test schema."""
    async_session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session_maker() as session:
        yield session


# ============================================================================
# Utility Fixtures
# ============================================================================


async def walk_forward(
    session: AsyncSession, query: ComposedQuery, page_size: int, **kwargs: Any
) -> list[Any]:
    """Follow ``cursor_after`` from the first page to the last; return every page."""
    pages = []
    page = await paginate_cursor(session, query, page_size=page_size, **kwargs)
    pages.append(page)
    while page.has_more:
        assert len(pages) < 100, "pagination did not terminate"
        page = await paginate_cursor(
            session, query, page_size=page_size, cursor=page.cursor_after, **kwargs
        )
        pages.append(page)
    return pages


@pytest.fixture
def forward_pages():
    """Expose ``walk_forward`` to tests."""
    return walk_forward
