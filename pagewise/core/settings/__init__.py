"""Pydantic Settings v2 configuration.

One frozen settings class per concern, read from environment variables (or a
``.env`` file) and cached by the loaders:

    from pagewise.core.settings import get_pagination_settings

    settings = get_pagination_settings()
    print(settings.default_page_size)
"""

from __future__ import annotations

from .loader import clear_settings_cache, get_logging_settings, get_pagination_settings
from .logs import LoggingSettings
from .pagination import PaginationSettings

__all__ = [
    "LoggingSettings",
    "PaginationSettings",
    "clear_settings_cache",
    "get_logging_settings",
    "get_pagination_settings",
]
