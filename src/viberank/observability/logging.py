"""Structured logging configuration for Viberank.

Provides JSON-formatted structured logging with contextual fields
(request_id, username, submission_id) via contextvars.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Optional

# Context variables for request-scoped logging fields
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_username: ContextVar[Optional[str]] = ContextVar("username", default=None)
_submission_id: ContextVar[Optional[str]] = ContextVar("submission_id", default=None)


def set_log_context(
    request_id: Optional[str] = None,
    username: Optional[str] = None,
    submission_id: Optional[str] = None,
):
    """Set contextual logging fields for the current async context."""
    if request_id is not None:
        _request_id.set(request_id)
    if username is not None:
        _username.set(username)
    if submission_id is not None:
        _submission_id.set(submission_id)


def clear_log_context():
    """Clear all contextual logging fields."""
    _request_id.set(None)
    _username.set(None)
    _submission_id.set(None)


def _context_fields() -> dict:
    fields = {}
    request_id = _request_id.get()
    if request_id:
        fields["request_id"] = request_id
    username = _username.get()
    if username:
        fields["username"] = username
    submission_id = _submission_id.get()
    if submission_id:
        fields["submission_id"] = submission_id
    return fields


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter with context fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(_context_fields())

        # Add exception info if present
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable log formatter with context fields for development."""

    _SHORT_NAMES = {"request_id": "req", "username": "user", "submission_id": "sub"}

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"[{self.formatTime(record, self.datefmt)}]",
            f"{record.levelname:8s}",
            f"{record.name}:",
            record.getMessage(),
        ]

        ctx_parts = [
            f"{self._SHORT_NAMES[key]}={value}"
            for key, value in _context_fields().items()
        ]
        if ctx_parts:
            parts.append(f"[{', '.join(ctx_parts)}]")

        msg = " ".join(parts)

        if record.exc_info and record.exc_info[1]:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


def configure_logging(environment: str = "development", log_level: str = "INFO", stream=None):
    """Configure structured logging for the application.

    Args:
        environment: "production" for JSON output, anything else for human-readable.
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        stream: Output stream. Defaults to stdout.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Remove existing handlers
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)

    if environment == "production":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter(
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root_logger.addHandler(handler)

    # Quiet noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
