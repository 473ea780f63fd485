"""Structured logging with JSON output.

One JSON object per line on stderr, ready for Loki or any other aggregator
that indexes fields such as terminal_id or refresh_count.

Correlation: request_id comes from the X-Request-ID header (or a generated
UUID) and is kept in a ContextVar. The weather cache runs refreshes inside a
copy of the triggering caller's context, so log lines written on the
"weather-refresh-<terminal>" threads carry the same request_id as the request
that caused them.
"""

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from typing import Any

from flask import g, has_request_context

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Attributes every LogRecord has; anything else was passed via extra={...}
_STANDARD_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("urllib3", "werkzeug", "yoyo")


def get_request_id() -> str | None:
    """Current request ID: Flask's g inside a request, else the context variable."""
    if has_request_context():
        request_id = g.get("request_id")
        if request_id:
            return str(request_id)
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
    if has_request_context():
        g.request_id = request_id


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            entry["request_id"] = request_id

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        )
        return json.dumps(entry, default=str)


def setup_logging(level: str | None = None) -> None:
    """Send all logging to stderr as JSON.

    Args:
        level: Log level name; defaults to Config.LOG_LEVEL
    """
    from resqwave.config import Config

    log_level = getattr(logging, (level or Config.LOG_LEVEL).upper(), logging.INFO)

    # stderr: stdout belongs to process managers and the maintenance script's report
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
