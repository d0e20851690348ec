"""Unit tests for settings loaders and the logging helpers."""

from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError

from pagewise.core.settings import (
    LoggingSettings,
    PaginationSettings,
    clear_settings_cache,
    get_logging_settings,
    get_pagination_settings,
)
from pagewise.infra.logging import JSONFormatter, LazyString, configure_logging, get_lazy_logger


@pytest.mark.unit
class TestPaginationSettings:
    """Test suite for PaginationSettings."""

    def test_defaults(self):
        settings = PaginationSettings()

        assert settings.default_page_size == 50
        assert settings.max_page_size is None
        assert settings.max_cursor_bytes == 8192

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PAGINATION_DEFAULT_PAGE_SIZE", "25")
        monkeypatch.setenv("PAGINATION_MAX_PAGE_SIZE", "100")

        settings = PaginationSettings()

        assert settings.default_page_size == 25
        assert settings.max_page_size == 100

    def test_frozen(self):
        settings = PaginationSettings()

        with pytest.raises(ValidationError):
            settings.default_page_size = 10

    @pytest.mark.parametrize("field", ["default_page_size", "max_page_size"])
    def test_rejects_non_positive(self, field):
        with pytest.raises(ValidationError):
            PaginationSettings(**{field: 0})

    def test_cursor_limit_floor(self):
        with pytest.raises(ValidationError):
            PaginationSettings(max_cursor_bytes=10)

    def test_loader_caches_until_cleared(self, monkeypatch):
        first = get_pagination_settings()
        assert get_pagination_settings() is first

        monkeypatch.setenv("PAGINATION_DEFAULT_PAGE_SIZE", "7")
        assert get_pagination_settings().default_page_size == 50

        clear_settings_cache()
        assert get_pagination_settings().default_page_size == 7


@pytest.mark.unit
class TestLoggingSettings:
    """Test suite for LoggingSettings."""

    def test_level_normalized(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")

        assert LoggingSettings().level == "DEBUG"

    def test_logging_kwargs(self):
        settings = LoggingSettings(level="WARNING", json_logs=False, service_name="api")

        assert settings.to_logging_kwargs() == {
            "log_level": "WARNING",
            "json_logs": False,
            "service_name": "api",
        }

    def test_loader(self, monkeypatch):
        monkeypatch.setenv("LOG_SERVICE_NAME", "catalog")
        clear_settings_cache()

        assert get_logging_settings().service_name == "catalog"


@pytest.mark.unit
class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("pagewise.test", logging.INFO, __file__, 1, "Rejected %s", ("cursor",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self):
        data = json.loads(JSONFormatter(static={"service": "pagewise"}).format(self._record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "pagewise.test"
        assert data["message"] == "Rejected cursor"
        assert data["service"] == "pagewise"
        assert data["timestamp"].endswith("Z")

    def test_extra_fields_copied(self):
        record = self._record(cursor_error="MalformedCursorError", cursor_error_details={"size": 9000})

        data = json.loads(JSONFormatter().format(record))

        assert data["cursor_error"] == "MalformedCursorError"
        assert data["cursor_error_details"] == {"size": 9000}
        assert "args" not in data


@pytest.mark.unit
class TestLazyLogger:
    """Test suite for lazy logging."""

    def test_callable_not_evaluated_when_disabled(self, caplog):
        logger = get_lazy_logger("pagewise.test.lazy")
        calls = []

        with caplog.at_level(logging.INFO, logger="pagewise.test.lazy"):
            logger.debug(lambda: calls.append("built") or "expensive")

        assert calls == []
        assert caplog.records == []

    def test_callable_evaluated_when_enabled(self, caplog):
        logger = get_lazy_logger("pagewise.test.lazy")

        with caplog.at_level(logging.DEBUG, logger="pagewise.test.lazy"):
            logger.debug(lambda: "plan built")
            logger.info("strategy: %s", lambda: "keys_first")

        assert [r.getMessage() for r in caplog.records] == ["plan built", "strategy: keys_first"]

    def test_bound_context_merged_with_extra(self, caplog):
        logger = get_lazy_logger("pagewise.test.lazy", component="keys_first")

        with caplog.at_level(logging.INFO, logger="pagewise.test.lazy"):
            logger.info("page", extra={"rows": 3})

        record = caplog.records[0]
        assert record.component == "keys_first"
        assert record.rows == 3

    def test_lazy_string(self):
        assert str(LazyString(lambda: 42)) == "42"


@pytest.mark.unit
class TestConfigureLogging:
    """Test suite for configure_logging."""

    def test_installs_json_handler(self):
        configure_logging("debug", json_logs=True, service_name="svc", logger_name="pagewise.test.configured")

        logger = logging.getLogger("pagewise.test.configured")
        assert logger.level == logging.DEBUG
        assert not logger.propagate
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.handlers[0].formatter.static == {"service": "svc"}

    def test_plain_text(self):
        configure_logging("WARNING", json_logs=False, logger_name="pagewise.test.plain")

        handler = logging.getLogger("pagewise.test.plain").handlers[0]
        assert not isinstance(handler.formatter, JSONFormatter)
