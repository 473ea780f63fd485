"""Database checks used by the readiness check."""

import os
import sqlite3
from pathlib import Path

from resqwave.config import Config
from resqwave.utils.logging import get_logger

logger = get_logger(__name__)

REQUIRED_TABLES = ("terminals", "weather_cache")


def _describe_operational_error(e: sqlite3.OperationalError, db_path: Path) -> str:
    message = str(e)
    if "unable to open database file" in message:
        return f"Cannot open database file: {db_path}. Check file permissions."
    if "database is locked" in message:
        return f"Database is locked: {db_path}. Another process may be using it."
    return f"Database error: {message}"


def check_database_connectivity(db_path: Path | None = None) -> tuple[bool, str | None]:
    """Check that the database can be opened and has been migrated.

    A database without the terminals and weather_cache tables counts as not
    ready: every forecast request would fail with a store error.

    Args:
        db_path: Path to the database file (default: Config.DATABASE_PATH)

    Returns:
        (True, None) when ready, otherwise (False, reason)
    """
    db_path = Path(db_path or Config.DATABASE_PATH)

    error: str | None = None
    if not db_path.parent.exists():
        error = f"Database directory does not exist: {db_path.parent}"
    elif not os.access(db_path.parent, os.W_OK):
        error = f"Database directory is not writable: {db_path.parent}"
    else:
        try:
            conn = sqlite3.connect(db_path)
            try:
                rows = conn.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'table' AND name IN (?, ?)",
                    REQUIRED_TABLES,
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.OperationalError as e:
            error = _describe_operational_error(e, db_path)
        else:
            missing = sorted(set(REQUIRED_TABLES) - {row[0] for row in rows})
            if missing:
                error = (
                    f"Database schema is missing tables {', '.join(missing)}: {db_path}. "
                    "Migrations have not been applied."
                )

    if error:
        logger.error(
            "Database connectivity check failed",
            extra={"db_path": str(db_path), "error": error},
        )
        return False, error

    logger.debug("Database connectivity check passed", extra={"db_path": str(db_path)})
    return True, None
