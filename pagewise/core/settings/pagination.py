"""Pagination settings.

Centralized defaults for page sizes and cursor limits so that every caller of
the pagination engine behaves the same way unless it overrides a value
explicitly.

Environment variables use PAGINATION_ prefix.
Example: PAGINATION_DEFAULT_PAGE_SIZE=25, PAGINATION_MAX_PAGE_SIZE=100
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PaginationSettings(BaseSettings):
    """Pagination configuration settings.

    Attributes:
        default_page_size: Page size used when a request does not specify one.
        max_page_size: Ceiling applied to requested page sizes. Requests above
            it are silently capped. ``None`` disables the ceiling.
        max_cursor_bytes: Maximum accepted size of an encoded cursor.

    Example:
        settings = PaginationSettings()
        page_size = min(requested, settings.max_page_size or requested)
    """

    default_page_size: int = Field(
        default=50,
        ge=1,
        le=10000,
        description="Default page size when page_size is not specified",
    )
    max_page_size: int | None = Field(
        default=None,
        ge=1,
        le=100000,
        description="Maximum allowed page size (requests above are capped)",
    )
    max_cursor_bytes: int = Field(
        default=8192,
        ge=64,
        le=65536,
        description="Maximum size of an encoded cursor in bytes",
    )

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )
