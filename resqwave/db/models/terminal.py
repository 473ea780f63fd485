"""Terminal database operations mixin."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from resqwave.db.models.dataclasses import Terminal
from resqwave.utils.logging import get_logger

if TYPE_CHECKING:
    from resqwave.utils.connection_pool import ConnectionPool

logger = get_logger(__name__)


def _row_to_terminal(row: sqlite3.Row) -> Terminal:
    return Terminal(
        id=row["id"],
        name=row["name"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class TerminalMixin:
    """Mixin providing terminal database operations."""

    _pool: ConnectionPool

    def _execute_with_timing(
        self,
        conn: sqlite3.Connection,
        query: str,
        params: tuple[Any, ...] = (),
    ) -> sqlite3.Cursor:
        """Execute query with timing (defined in base class)."""
        raise NotImplementedError

    def create_terminal(
        self, terminal_id: str, name: str, latitude: float, longitude: float
    ) -> Terminal:
        """Register a terminal.

        Raises:
            sqlite3.IntegrityError: If a terminal with this ID already exists
        """
        now = datetime.now(UTC).replace(tzinfo=None)
        with self._pool.get_connection() as conn:
            self._execute_with_timing(
                conn,
                """
                INSERT INTO terminals (id, name, latitude, longitude, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (terminal_id, name, latitude, longitude, now.isoformat()),
            )
            conn.commit()

        logger.info(
            "Terminal created",
            extra={"terminal_id": terminal_id, "lat": latitude, "lon": longitude},
        )
        return Terminal(
            id=terminal_id, name=name, latitude=latitude, longitude=longitude, created_at=now
        )

    def get_terminal(self, terminal_id: str) -> Terminal | None:
        with self._pool.get_connection() as conn:
            row = self._execute_with_timing(
                conn,
                "SELECT * FROM terminals WHERE id = ?",
                (terminal_id,),
            ).fetchone()
        return _row_to_terminal(row) if row else None

    def list_terminals(self) -> list[Terminal]:
        with self._pool.get_connection() as conn:
            rows = self._execute_with_timing(
                conn, "SELECT * FROM terminals ORDER BY id"
            ).fetchall()
        return [_row_to_terminal(row) for row in rows]

    def delete_terminal(self, terminal_id: str) -> bool:
        """Delete a terminal. Its weather cache entry is removed by cascade.

        Returns:
            True if the terminal existed
        """
        with self._pool.get_connection() as conn:
            cursor = self._execute_with_timing(
                conn,
                "DELETE FROM terminals WHERE id = ?",
                (terminal_id,),
            )
            conn.commit()
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Terminal deleted", extra={"terminal_id": terminal_id})
        return deleted
