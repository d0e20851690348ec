"""Logging infrastructure.

Module loggers come from ``logging.getLogger(__name__)``; debug output that is
expensive to build goes through the lazy adapter:

    from pagewise.infra.logging import get_lazy_logger

    logger = get_lazy_logger(__name__)
    logger.debug(lambda: f"Plan: {describe(plan)}")  # only built if DEBUG is on
"""

from pagewise.infra.logging.config import configure_logging, setup_logging
from pagewise.infra.logging.formatters import JSONFormatter
from pagewise.infra.logging.lazy import LazyLoggerAdapter, LazyString, get_lazy_logger

__all__ = [
    "JSONFormatter",
    "LazyLoggerAdapter",
    "LazyString",
    "configure_logging",
    "get_lazy_logger",
    "setup_logging",
]
