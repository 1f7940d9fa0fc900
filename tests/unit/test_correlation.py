"""
Unit tests for correlation IDs and logging setup.
"""

import json
import logging
import pytest
import uuid

from dbcomparer.utils.correlation import (
    CorrelationContext,
    correlation_id_filter,
    get_correlation_id,
    new_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from dbcomparer.utils.logging_config import StructuredJSONFormatter, configure_logging


class TestCorrelationId:
    """Test correlation ID management."""

    def test_new_correlation_id_is_uuid(self):
        """Test that generated IDs are UUID4 strings."""
        correlation_id = new_correlation_id()

        assert str(uuid.UUID(correlation_id)) == correlation_id
        assert new_correlation_id() != correlation_id

    def test_no_id_outside_context(self):
        """Test that no ID is set by default."""
        assert get_correlation_id() is None

    def test_set_and_reset(self):
        """Test that reset restores the previous ID."""
        token = set_correlation_id("run-1")
        assert get_correlation_id() == "run-1"

        reset_correlation_id(token)
        assert get_correlation_id() is None

    @pytest.mark.parametrize("bad", ["", None, 42])
    def test_invalid_id_rejected(self, bad):
        """Test that empty or non-string IDs raise ValueError."""
        with pytest.raises(ValueError):
            set_correlation_id(bad)

    def test_context_generates_and_clears(self):
        """Test that the context sets a fresh ID and clears it on exit."""
        with CorrelationContext() as correlation_id:
            assert get_correlation_id() == correlation_id

        assert get_correlation_id() is None

    def test_nested_contexts_restore_outer(self):
        """Test that leaving an inner context restores the outer ID."""
        with CorrelationContext("outer"):
            with CorrelationContext("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"

    def test_context_restores_on_error(self):
        """Test that the ID is cleared when the block raises."""
        with pytest.raises(RuntimeError):
            with CorrelationContext("failing"):
                raise RuntimeError("boom")

        assert get_correlation_id() is None


class TestCorrelationFilter:
    """Test stamping log records."""

    def _record(self):
        return logging.LogRecord("dbcomparer", logging.INFO, __file__, 1, "message", (), None)

    def test_filter_outside_context(self):
        """Test the placeholder when no comparison is running."""
        record = self._record()

        assert correlation_id_filter(record) is True
        assert record.correlation_id == "N/A"

    def test_filter_inside_context(self):
        """Test that records carry the active ID."""
        record = self._record()

        with CorrelationContext("abc"):
            correlation_id_filter(record)

        assert record.correlation_id == "abc"


class TestLoggingConfig:
    """Test console and JSON logging setup."""

    def test_json_formatter_fields(self):
        """Test the structure of JSON log lines."""
        record = logging.LogRecord("dbcomparer.comparison", logging.INFO, __file__, 10, "hello %s", ("x",), None)
        record.correlation_id = "abc"
        record.table = "employee"

        data = json.loads(StructuredJSONFormatter().format(record))

        assert data["message"] == "hello x"
        assert data["level"] == "INFO"
        assert data["logger"] == "dbcomparer.comparison"
        assert data["correlation_id"] == "abc"
        assert data["table"] == "employee"
        assert data["timestamp"].endswith("Z")

    def test_json_timestamp_is_record_creation_time(self):
        """Test that the timestamp reflects when the record was created."""
        record = logging.LogRecord("dbcomparer", logging.INFO, __file__, 10, "late", (), None)
        record.created = 1672653600.25

        data = json.loads(StructuredJSONFormatter().format(record))

        assert data["timestamp"] == "2023-01-02T10:00:00.250000Z"

    def test_configure_json_logging(self):
        """Test that JSON logging replaces earlier handlers and stops propagation."""
        target = configure_logging(logging.DEBUG, json_logging=True, logger_name="dbcomparer.test_json")
        configure_logging(logging.DEBUG, json_logging=True, logger_name="dbcomparer.test_json")

        assert len(target.handlers) == 1
        assert isinstance(target.handlers[0].formatter, StructuredJSONFormatter)
        assert target.propagate is False
        assert target.level == logging.DEBUG

    def test_configure_from_env(self, monkeypatch):
        """Test that JSON_LOGGING selects the JSON formatter."""
        monkeypatch.setenv("JSON_LOGGING", "true")

        target = configure_logging(logger_name="dbcomparer.test_env")

        assert isinstance(target.handlers[0].formatter, StructuredJSONFormatter)

    def test_console_logging(self, monkeypatch):
        """Test the human-readable formatter."""
        monkeypatch.delenv("JSON_LOGGING", raising=False)

        target = configure_logging(logger_name="dbcomparer.test_console")

        assert not isinstance(target.handlers[0].formatter, StructuredJSONFormatter)
        assert target.propagate is True
