"""
Add weather_cache table for per-terminal forecast data.

One row per terminal (terminal_id is UNIQUE, writes are upserts). Forecasts
are refreshed lazily on read once expires_at has passed (default TTL: 6 hours,
the OpenWeather 3-hour forecast does not change faster than that).
refresh_count starts at 1 and is incremented on every replacement.
Rows are removed together with their terminal (ON DELETE CASCADE).
"""

from yoyo import step

__depends__ = {"0001_create_terminals"}

steps = [
    step(
        """
        CREATE TABLE IF NOT EXISTS weather_cache (
            terminal_id TEXT PRIMARY KEY,
            hourly_forecast TEXT NOT NULL,
            weekly_forecast TEXT NOT NULL,
            fetched_at TEXT NOT NULL,
            expires_at TEXT NOT NULL,
            refresh_count INTEGER NOT NULL DEFAULT 1,
            last_accessed_at TEXT,
            FOREIGN KEY (terminal_id) REFERENCES terminals(id) ON DELETE CASCADE,
            CHECK (fetched_at <= expires_at)
        )
        """,
        "DROP TABLE IF EXISTS weather_cache",
    ),
    step(
        """
        CREATE INDEX IF NOT EXISTS idx_weather_cache_expires_at
        ON weather_cache(expires_at)
        """,
        "DROP INDEX IF EXISTS idx_weather_cache_expires_at",
    ),
]
