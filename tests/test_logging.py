"""Tests for log redaction."""

import logging

import structlog

from selfpm.utils.logging import _filter_sensitive, setup_logging


class TestFilterSensitive:
    def test_redacts_secret_keys(self):
        event = _filter_sensitive(None, "info", {"event": "x", "webhook_token": "abc"})
        assert event["webhook_token"] == "***REDACTED***"

    def test_redacts_inline_values(self):
        event = _filter_sensitive(None, "info", {"event": "x", "detail": "secret=abc123"})
        assert event["detail"] == "secret=***REDACTED***"

    def test_leaves_other_values(self):
        event = _filter_sensitive(None, "info", {"event": "webhook_resolved", "repo": "john/test", "count": 3})
        assert event == {"event": "webhook_resolved", "repo": "john/test", "count": 3}


def test_setup_logging_sets_level():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        setup_logging(level="warning", json_output=True)
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
        structlog.reset_defaults()
