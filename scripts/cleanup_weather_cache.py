#!/usr/bin/env python3
"""Expired weather cache cleanup for ResQWave.

Deletes weather_cache rows whose expires_at has passed. Expired rows are
otherwise kept as a fallback for when OpenWeather is down, so run this at a
cadence well above the cache TTL (daily is plenty).

Usage:
    python scripts/cleanup_weather_cache.py
    python scripts/cleanup_weather_cache.py --stats   # Only print cache statistics

This script is designed to be run via systemd timer or cron.
"""

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path so we can import resqwave
sys.path.insert(0, str(Path(__file__).parent.parent))

from resqwave.exceptions import StoreFailure
from resqwave.utils.logging import get_logger, setup_logging
from resqwave.weather.cache_manager import WeatherCacheManager

logger = get_logger(__name__)


class _NoProvider:
    """Cleanup never refreshes, so no upstream is needed."""

    def fetch_forecast(self, terminal_id: str):  # pragma: no cover
        raise RuntimeError("cleanup script does not fetch forecasts")


def build_manager() -> WeatherCacheManager:
    from resqwave.db.models import db

    return WeatherCacheManager(db, _NoProvider())


def run(manager: WeatherCacheManager, stats_only: bool = False) -> int:
    """Print stats and (unless stats_only) delete expired entries.

    Returns:
        0 on success, 1 if the database could not be read or written
    """
    try:
        before = manager.cache_stats()
        print(json.dumps(before.to_dict(), indent=2))
        if stats_only:
            return 0

        deleted = manager.cleanup_expired()
    except StoreFailure as e:
        logger.error("Weather cache cleanup failed", extra={"error": str(e)}, exc_info=True)
        return 1

    logger.info(
        "Weather cache cleanup completed",
        extra={"deleted": deleted, "remaining": before.total - deleted},
    )
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete expired weather cache entries")
    parser.add_argument("--stats", action="store_true", help="Only print cache statistics")
    args = parser.parse_args()

    setup_logging()
    manager = build_manager()
    try:
        return run(manager, stats_only=args.stats)
    finally:
        manager.close()


if __name__ == "__main__":
    sys.exit(main())
