"""Weather cache database operations mixin.

One row per terminal. Writes are single-statement upserts, so a reader in
another thread sees either the previous forecast or the new one, never a mix.
All timestamps are naive UTC stored as ISO strings with microseconds, which
keeps lexicographic comparison in SQL equivalent to datetime comparison.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict
from datetime import datetime
from typing import TYPE_CHECKING, Any

from resqwave.db.models.dataclasses import WeatherCacheEntry
from resqwave.utils.logging import get_logger
from resqwave.weather.models import DailyForecast, ForecastData, HourlyForecast

if TYPE_CHECKING:
    from resqwave.utils.connection_pool import ConnectionPool

logger = get_logger(__name__)


def _ts(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _row_to_entry(row: sqlite3.Row) -> WeatherCacheEntry:
    last_accessed = row["last_accessed_at"]
    return WeatherCacheEntry(
        terminal_id=row["terminal_id"],
        fetched_at=datetime.fromisoformat(row["fetched_at"]),
        expires_at=datetime.fromisoformat(row["expires_at"]),
        refresh_count=row["refresh_count"],
        hourly_forecast=[HourlyForecast(**p) for p in json.loads(row["hourly_forecast"])],
        weekly_forecast=[DailyForecast(**d) for d in json.loads(row["weekly_forecast"])],
        last_accessed_at=datetime.fromisoformat(last_accessed) if last_accessed else None,
    )


class WeatherCacheMixin:
    """Mixin providing weather cache database operations."""

    _pool: ConnectionPool

    def _execute_with_timing(
        self,
        conn: sqlite3.Connection,
        query: str,
        params: tuple[Any, ...] = (),
    ) -> sqlite3.Cursor:
        """Execute query with timing (defined in base class)."""
        raise NotImplementedError

    def get_weather_cache(self, terminal_id: str) -> WeatherCacheEntry | None:
        """Get the cache entry for a terminal, expired or not.

        Freshness is the caller's decision, so expired rows are returned too
        (they are still useful as a fallback when the provider is down).
        """
        with self._pool.get_connection() as conn:
            row = self._execute_with_timing(
                conn,
                "SELECT * FROM weather_cache WHERE terminal_id = ?",
                (terminal_id,),
            ).fetchone()
        return _row_to_entry(row) if row else None

    def upsert_weather_cache(
        self,
        terminal_id: str,
        forecast: ForecastData,
        fetched_at: datetime,
        expires_at: datetime,
    ) -> WeatherCacheEntry:
        """Insert or replace the forecast for a terminal.

        A new row starts with refresh_count = 1; replacing an existing row
        increments it. last_accessed_at is set to fetched_at.

        Returns:
            The stored entry
        """
        hourly_json = json.dumps([asdict(p) for p in forecast.hourly])
        weekly_json = json.dumps([asdict(d) for d in forecast.weekly])

        with self._pool.get_connection() as conn:
            self._execute_with_timing(
                conn,
                """
                INSERT INTO weather_cache
                (terminal_id, hourly_forecast, weekly_forecast, fetched_at, expires_at,
                 refresh_count, last_accessed_at)
                VALUES (?, ?, ?, ?, ?, 1, ?)
                ON CONFLICT(terminal_id) DO UPDATE SET
                    hourly_forecast = excluded.hourly_forecast,
                    weekly_forecast = excluded.weekly_forecast,
                    fetched_at = excluded.fetched_at,
                    expires_at = excluded.expires_at,
                    refresh_count = weather_cache.refresh_count + 1,
                    last_accessed_at = excluded.last_accessed_at
                """,
                (
                    terminal_id,
                    hourly_json,
                    weekly_json,
                    _ts(fetched_at),
                    _ts(expires_at),
                    _ts(fetched_at),
                ),
            )
            row = self._execute_with_timing(
                conn,
                "SELECT * FROM weather_cache WHERE terminal_id = ?",
                (terminal_id,),
            ).fetchone()
            conn.commit()

        entry = _row_to_entry(row)
        logger.debug(
            "Weather cache upserted",
            extra={"terminal_id": terminal_id, "refresh_count": entry.refresh_count},
        )
        return entry

    def touch_weather_cache(self, terminal_id: str, accessed_at: datetime) -> None:
        """Record a read of the cache entry.

        last_accessed_at never moves backwards, even if reads finish out of order.
        """
        with self._pool.get_connection() as conn:
            self._execute_with_timing(
                conn,
                """
                UPDATE weather_cache SET last_accessed_at = ?
                WHERE terminal_id = ?
                  AND (last_accessed_at IS NULL OR last_accessed_at < ?)
                """,
                (_ts(accessed_at), terminal_id, _ts(accessed_at)),
            )
            conn.commit()

    def delete_weather_cache(self, terminal_id: str) -> bool:
        """Delete the cache entry for a terminal.

        Returns:
            True if an entry was deleted
        """
        with self._pool.get_connection() as conn:
            cursor = self._execute_with_timing(
                conn,
                "DELETE FROM weather_cache WHERE terminal_id = ?",
                (terminal_id,),
            )
            conn.commit()
            return cursor.rowcount > 0

    def cleanup_expired_weather_cache(self, now: datetime) -> int:
        """Delete all entries that expired before now.

        Returns:
            Number of entries deleted
        """
        with self._pool.get_connection() as conn:
            # Strict: an entry expiring exactly at now is already stale for reads
            # but is kept one more cleanup cycle
            cursor = self._execute_with_timing(
                conn,
                "DELETE FROM weather_cache WHERE expires_at < ?",
                (_ts(now),),
            )
            conn.commit()
            return cursor.rowcount

    def get_weather_cache_stats(self, now: datetime) -> dict[str, Any]:
        """Aggregate counts over the cache table.

        Returns:
            Dict with total, valid, expired, total_refreshes, oldest_fetched_at,
            newest_fetched_at (datetimes or None for an empty table)
        """
        with self._pool.get_connection() as conn:
            row = self._execute_with_timing(
                conn,
                """
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(CASE WHEN expires_at > ? THEN 1 ELSE 0 END), 0) AS valid,
                    COALESCE(SUM(refresh_count), 0) AS total_refreshes,
                    MIN(fetched_at) AS oldest,
                    MAX(fetched_at) AS newest
                FROM weather_cache
                """,
                (_ts(now),),
            ).fetchone()

        return {
            "total": row["total"],
            "valid": row["valid"],
            "expired": row["total"] - row["valid"],
            "total_refreshes": row["total_refreshes"],
            "oldest_fetched_at": datetime.fromisoformat(row["oldest"]) if row["oldest"] else None,
            "newest_fetched_at": datetime.fromisoformat(row["newest"]) if row["newest"] else None,
        }
