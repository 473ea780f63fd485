"""Database core: schema migrations and the shared connection pool.

Entity operations live in mixins (terminal.py, weather_cache.py) that the
Database class in __init__.py combines with DatabaseBase.
"""

import sqlite3
from pathlib import Path
from typing import Any

from yoyo import get_backend, read_migrations

from resqwave.config import Config
from resqwave.utils.connection_pool import ConnectionPool
from resqwave.utils.db_helpers import execute_with_timing, init_query_logging
from resqwave.utils.logging import get_logger

logger = get_logger(__name__)

# <repo>/migrations
MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


def apply_migrations(db_path: Path, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """Bring the schema at db_path up to date.

    Safe to call from several processes at once: yoyo serializes them
    through its lock table.

    Returns:
        IDs of the migrations applied by this call (empty when up to date)
    """
    backend = get_backend(f"sqlite:///{db_path}")
    try:
        with backend.lock():
            pending = backend.to_apply(read_migrations(str(migrations_dir)))
            applied = [m.id for m in pending]
            if applied:
                logger.info(
                    "Applying database migrations",
                    extra={"db_path": str(db_path), "migrations": applied},
                )
            backend.apply_migrations(pending)
    finally:
        backend.connection.close()
    return applied


class DatabaseBase:
    """Owns the connection pool; migrates the schema on construction."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path or Config.DATABASE_PATH
        self._should_log_queries, self._slow_query_threshold_ms = init_query_logging()
        # Refresh workers and request threads write concurrently
        self._pool = ConnectionPool(self.db_path, busy_timeout=Config.DATABASE_BUSY_TIMEOUT)
        self.applied_migrations = apply_migrations(self.db_path)

    def close(self) -> None:
        self._pool.close_all()

    def _execute_with_timing(
        self,
        conn: sqlite3.Connection,
        query: str,
        params: tuple[Any, ...] = (),
    ) -> sqlite3.Cursor:
        return execute_with_timing(
            conn,
            query,
            params,
            should_log=self._should_log_queries,
            slow_query_threshold_ms=self._slow_query_threshold_ms,
        )
