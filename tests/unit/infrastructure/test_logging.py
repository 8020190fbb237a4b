"""Tests for structured logging."""

import json
import logging

from statussync.infrastructure.observability.logging import (
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self):
        """Test setting and getting correlation ID."""
        result = set_correlation_id("tick-123")
        assert result == "tick-123"
        assert get_correlation_id() == "tick-123"

    def test_set_correlation_id_generates_uuid_when_none(self):
        """Test that setting None generates a UUID."""
        result = set_correlation_id(None)
        assert len(result) == 36
        assert get_correlation_id() == result

    def test_filter_adds_correlation_id(self):
        set_correlation_id("tick-456")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "tick-456"


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self):
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        assert logging.getLogger("test").getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_replaces_handlers(self):
        configure_logging(log_level="INFO", json_format=True)
        configure_logging(log_level="INFO", json_format=True)
        assert len(logging.getLogger().handlers) == 1

    def test_httpx_is_quieted(self):
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_json_formatter_includes_extra_and_correlation_id(self):
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord(
            "statussync.test", logging.INFO, __file__, 10, "status_sync.user.updated", None, None
        )
        record.user_id = "U1"
        record.correlation_id = "tick-789"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "status_sync.user.updated"
        assert payload["user_id"] == "U1"
        assert payload["correlation_id"] == "tick-789"
        assert payload["level"] == "INFO"
