"""
Tests for structured logging configuration and JSON formatter.
"""
import json
import logging
import sys

from quizdesk.core.config import settings
from quizdesk.core.logging_config import (
    JSONFormatter,
    request_id_context,
    setup_logging,
)


def make_record(level=logging.INFO, msg="Test message", exc_info=None, **extra):
    record = logging.LogRecord(
        name="test_logger",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for the JSONFormatter class."""

    def test_basic_log_entry(self):
        """Test that basic log entry produces valid JSON with required fields."""
        log_entry = json.loads(JSONFormatter().format(make_record()))

        assert "timestamp" in log_entry
        assert log_entry["level"] == "INFO"
        assert log_entry["logger"] == "test_logger"
        assert log_entry["message"] == "Test message"
        assert "source" not in log_entry

    def test_request_id_from_context(self):
        """Test that request_id is included when set in context."""
        token = request_id_context.set("test-request-123")
        try:
            log_entry = json.loads(JSONFormatter().format(make_record()))
            assert log_entry["request_id"] == "test-request-123"
        finally:
            request_id_context.reset(token)

    def test_no_request_id_when_not_set(self):
        token = request_id_context.set(None)
        try:
            log_entry = json.loads(JSONFormatter().format(make_record()))
            assert "request_id" not in log_entry
        finally:
            request_id_context.reset(token)

    def test_extra_fields(self):
        """Quiz fields passed via extra= end up in the entry."""
        record = make_record(user_id="student1", test_id="2", status_code=200)
        log_entry = json.loads(JSONFormatter().format(record))

        assert log_entry["user_id"] == "student1"
        assert log_entry["test_id"] == "2"
        assert log_entry["status_code"] == 200

    def test_unknown_extra_fields_are_ignored(self):
        record = make_record(password="secret-one")
        log_entry = json.loads(JSONFormatter().format(record))
        assert "password" not in log_entry

    def test_error_includes_source_and_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record(level=logging.ERROR, exc_info=sys.exc_info())

        log_entry = json.loads(JSONFormatter().format(record))

        assert log_entry["source"] == "test.py:10"
        assert "ValueError: boom" in log_entry["exception"]


class TestSetupLogging:
    """Tests for setup_logging."""

    def _console_formatter(self):
        handler = logging.getLogger("quizdesk").handlers[0]
        return handler.formatter

    def test_json_in_production(self, monkeypatch):
        monkeypatch.setattr(settings, "ENV", "production")
        setup_logging()
        assert isinstance(self._console_formatter(), JSONFormatter)

    def test_plain_format_in_development(self, monkeypatch):
        monkeypatch.setattr(settings, "ENV", "development")
        setup_logging()
        assert not isinstance(self._console_formatter(), JSONFormatter)

    def test_log_level_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "LOG_LEVEL", "debug")
        setup_logging()
        assert logging.getLogger("quizdesk").level == logging.DEBUG

        monkeypatch.setattr(settings, "LOG_LEVEL", "INFO")
        setup_logging()
        assert logging.getLogger("quizdesk").level == logging.INFO
