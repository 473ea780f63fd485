"""Thread-local SQLite connection management.

Flask serves requests from a thread pool and the weather cache runs its
refreshes on worker threads, so every thread that touches the database gets
its own long-lived SQLite connection:

    pool = ConnectionPool("/path/to/resqwave.db")

    with pool.get_connection() as conn:
        conn.execute("SELECT * FROM terminals")

Connections are kept open between uses. Call pool.close_all() on shutdown.
"""

import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager, suppress
from pathlib import Path

from resqwave.utils.logging import get_logger

logger = get_logger(__name__)


class ConnectionPool:
    """Thread-local SQLite connection pool.

    SQLite locks at file level, so a classic shared pool buys nothing. One
    connection per thread avoids both reconnect overhead and cross-thread use
    of a single connection.
    """

    def __init__(self, db_path: Path | str, busy_timeout: float = 30.0) -> None:
        """Initialize the connection pool.

        Args:
            db_path: Path to the SQLite database file
            busy_timeout: Seconds to wait for a competing writer's lock
        """
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self._local = threading.local()
        self._lock = threading.Lock()
        # thread ident -> connection, so close_all() can reach every thread's connection
        self._connections: dict[int, sqlite3.Connection] = {}
        logger.debug("Connection pool created", extra={"db_path": str(self.db_path)})

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new connection with standard settings."""
        conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            timeout=self.busy_timeout,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        # Required for weather_cache -> terminals ON DELETE CASCADE
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _reap_dead_threads(self) -> None:
        """Close connections owned by threads that have exited.

        Must be called with self._lock held.
        """
        alive = {t.ident for t in threading.enumerate()}
        dead = [tid for tid in self._connections if tid not in alive]
        for tid in dead:
            with suppress(sqlite3.Error):
                self._connections.pop(tid).close()
        if dead:
            logger.debug(
                "Reaped dead thread connections",
                extra={"dead_count": len(dead), "remaining": len(self._connections)},
            )

    def _get_thread_connection(self) -> sqlite3.Connection:
        """Get or create the connection for the current thread."""
        thread_id = threading.get_ident()
        conn: sqlite3.Connection | None = getattr(self._local, "connection", None)

        if conn is not None:
            try:
                conn.execute("SELECT 1")
                return conn
            except sqlite3.Error:
                logger.warning(
                    "Thread connection was broken, creating new one",
                    extra={"thread_id": thread_id, "db_path": str(self.db_path)},
                )
                with self._lock:
                    self._connections.pop(thread_id, None)

        conn = self._create_connection()
        self._local.connection = conn
        with self._lock:
            self._reap_dead_threads()
            self._connections[thread_id] = conn

        logger.debug(
            "Created new thread connection",
            extra={
                "thread_id": thread_id,
                "db_path": str(self.db_path),
                "total_connections": len(self._connections),
            },
        )
        return conn

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection]:
        """Yield the current thread's connection.

        The connection is not closed on exit. Any exception rolls back the
        uncommitted transaction before propagating.
        """
        conn = self._get_thread_connection()
        try:
            yield conn
        except Exception:
            with suppress(sqlite3.Error):
                conn.rollback()
            raise

    def close_all(self) -> None:
        """Close all connections in the pool."""
        with self._lock:
            for conn in self._connections.values():
                with suppress(sqlite3.Error):
                    conn.close()
            self._connections.clear()
        self._local.connection = None
        logger.info("All pool connections closed", extra={"db_path": str(self.db_path)})

    def connection_count(self) -> int:
        """Return the number of tracked connections."""
        with self._lock:
            return len(self._connections)
