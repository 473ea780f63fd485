"""Timed query execution for the database mixins.

Timing is only switched on in development or with LOG_LEVEL=DEBUG. Forecast
rows carry several kilobytes of JSON, so logged parameters are clipped.
"""

import sqlite3
import time
from typing import Any

from resqwave.config import Config
from resqwave.utils.logging import get_logger

logger = get_logger(__name__)

QUERY_SNIPPET_MAX_LENGTH = 200
PARAMS_SNIPPET_MAX_LENGTH = 100


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _query_fields(query: str, params: tuple[Any, ...], elapsed_ms: float) -> dict[str, Any]:
    return {
        # Collapse the indentation of triple-quoted SQL
        "query_snippet": _clip(" ".join(query.split()), QUERY_SNIPPET_MAX_LENGTH),
        "params_snippet": _clip(str(params), PARAMS_SNIPPET_MAX_LENGTH),
        "elapsed_ms": round(elapsed_ms, 2),
    }


def execute_with_timing(
    conn: sqlite3.Connection,
    query: str,
    params: tuple[Any, ...] = (),
    *,
    should_log: bool,
    slow_query_threshold_ms: float,
) -> sqlite3.Cursor:
    """Run a query, warning when it takes longer than the threshold.

    Returns:
        The cursor from conn.execute()
    """
    if not should_log:
        return conn.execute(query, params)

    started = time.perf_counter()
    cursor = conn.execute(query, params)
    elapsed_ms = (time.perf_counter() - started) * 1000

    if elapsed_ms >= slow_query_threshold_ms:
        fields = _query_fields(query, params, elapsed_ms)
        fields["threshold_ms"] = slow_query_threshold_ms
        fields["rowcount"] = cursor.rowcount
        logger.warning("Slow query detected", extra=fields)
    elif Config.LOG_LEVEL == "DEBUG":
        logger.debug("Query executed", extra=_query_fields(query, params, elapsed_ms))

    return cursor


def init_query_logging() -> tuple[bool, float]:
    """Returns (should_log_queries, slow_query_threshold_ms) from Config."""
    return (
        Config.LOG_LEVEL == "DEBUG" or Config.is_development(),
        Config.SLOW_QUERY_THRESHOLD_MS,
    )
