"""Database models package.

Usage:
    from resqwave.db.models import Database, db

    # Use the global instance
    terminal = db.get_terminal("T1")

    # Or create your own instance
    custom_db = Database(custom_path)
"""

from pathlib import Path

from resqwave.db.models.base import DatabaseBase
from resqwave.db.models.dataclasses import Terminal, WeatherCacheEntry
from resqwave.db.models.helpers import check_database_connectivity
from resqwave.db.models.terminal import TerminalMixin
from resqwave.db.models.weather_cache import WeatherCacheMixin


class Database(DatabaseBase, TerminalMixin, WeatherCacheMixin):
    """Main database class combining all mixins."""

    def __init__(self, db_path: Path | None = None) -> None:
        """Initialize the database.

        Args:
            db_path: Optional path to the database file.
                    Defaults to Config.DATABASE_PATH.
        """
        super().__init__(db_path)


# Global database instance
db = Database()

__all__ = [
    "Database",
    "db",
    "Terminal",
    "WeatherCacheEntry",
    "check_database_connectivity",
]
