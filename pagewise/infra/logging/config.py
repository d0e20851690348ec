"""Logging configuration setup.

``configure_logging`` installs a single console handler on the ``pagewise``
logger through ``logging.config.dictConfig``. Applications that already own
their logging setup can skip it; the engine only ever calls
``logging.getLogger`` / ``get_lazy_logger``.
"""

from __future__ import annotations

import logging
import logging.config
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pagewise.core.settings.logs import LoggingSettings

_LOGGING_INITIALIZED = False


def configure_logging(
    log_level: str = "INFO",
    *,
    json_logs: bool = True,
    service_name: str = "pagewise",
    logger_name: str = "pagewise",
) -> None:
    """Configure the package logger with dictConfig.

    Args:
        log_level: Logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_logs: Emit JSON Lines instead of plain text.
        service_name: Static ``service`` field added to JSON records.
        logger_name: Logger to configure; children propagate to it.
    """
    formatter: dict[str, Any]
    if json_logs:
        formatter = {
            "()": "pagewise.infra.logging.formatters.JSONFormatter",
            "static": {"service": service_name},
        }
    else:
        formatter = {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": formatter},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stderr",
                },
            },
            "loggers": {
                logger_name: {
                    "level": log_level.upper(),
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
        }
    )


def setup_logging(log_settings: LoggingSettings | None = None, *, force: bool = False) -> None:
    """Configure logging once from settings.

    Args:
        log_settings: Optional settings instance; loaded from the environment
            when omitted.
        force: Reconfigure even if logging was already initialized.
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from pagewise.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(**log_settings.to_logging_kwargs())  # type: ignore[arg-type]
    _LOGGING_INITIALIZED = True
