"""Unit tests for structured JSON logging."""

import json
import logging
import sys
import threading
from datetime import datetime

from resqwave.utils.logging import JSONFormatter, request_id_var


def make_record(msg: str = "Weather cache hit", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="resqwave.weather.cache_manager",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self) -> None:
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "resqwave.weather.cache_manager"
        assert data["message"] == "Weather cache hit"
        assert "timestamp" in data

    def test_extra_fields_included(self) -> None:
        data = json.loads(JSONFormatter().format(make_record(terminal_id="T1", refresh_count=2)))

        assert data["terminal_id"] == "T1"
        assert data["refresh_count"] == 2

    def test_request_id_from_context(self) -> None:
        token = request_id_var.set("req-123")
        try:
            data = json.loads(JSONFormatter().format(make_record()))
        finally:
            request_id_var.reset(token)

        assert data["request_id"] == "req-123"

    def test_exception_info(self) -> None:
        try:
            raise ValueError("bad payload")
        except ValueError:
            record = make_record("Failed")
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad payload"

    def test_non_serializable_values_stringified(self) -> None:
        data = json.loads(
            JSONFormatter().format(make_record(fetched_at=datetime(2025, 1, 15, 12, 0)))
        )

        assert data["fetched_at"] == "2025-01-15 12:00:00"

    def test_thread_name(self) -> None:
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["thread"] == threading.current_thread().name
