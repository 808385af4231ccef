"""Unit tests for logging configuration."""

import json
import logging

from app.logging_config import DevelopmentFormatter, JSONFormatter, get_logger


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="app.services.navigation",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="Form response submitted",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for production JSON output."""

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "app.services.navigation"
        assert data["message"] == "Form response submitted"

    def test_extra_context_included(self):
        data = json.loads(JSONFormatter().format(make_record(form_id="feedback", response_id="r1")))

        assert data["form_id"] == "feedback"
        assert data["response_id"] == "r1"


class TestDevelopmentFormatter:
    """Tests for human-readable output."""

    def test_context_suffix(self):
        output = DevelopmentFormatter().format(make_record(form_id="feedback", session_id="s1"))

        assert "Form response submitted" in output
        assert "[form_id=feedback session_id=s1]" in output

    def test_no_context(self):
        output = DevelopmentFormatter().format(make_record())
        assert "form_id=" not in output


def test_get_logger():
    assert get_logger("app.test").name == "app.test"
