"""Tests for structured logging."""

import json
import logging

from viberank.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    clear_log_context,
    set_log_context,
)


def _record(message="Submission stored"):
    return logging.LogRecord("viberank.test", logging.INFO, __file__, 1, message, None, None)


class TestFormatters:
    def setup_method(self):
        clear_log_context()

    def teardown_method(self):
        clear_log_context()

    def test_structured_includes_context(self):
        set_log_context(request_id="abc123", username="alice")

        entry = json.loads(StructuredFormatter().format(_record()))

        assert entry["message"] == "Submission stored"
        assert entry["level"] == "INFO"
        assert entry["request_id"] == "abc123"
        assert entry["username"] == "alice"
        assert "submission_id" not in entry

    def test_human_readable_context_suffix(self):
        set_log_context(username="alice", submission_id="s1")

        line = HumanReadableFormatter().format(_record())

        assert "Submission stored" in line
        assert line.endswith("[user=alice, sub=s1]")

    def test_no_context(self):
        line = HumanReadableFormatter().format(_record())

        assert "[user=" not in line
