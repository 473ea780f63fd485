"""Unit tests for database connectivity checking."""

import os
import sqlite3
from pathlib import Path
from unittest.mock import patch

from resqwave.db.models import Database, check_database_connectivity


class TestCheckDatabaseConnectivity:
    """Tests for check_database_connectivity function."""

    def test_successful_connection(self, tmp_path: Path) -> None:
        """Should return success for a migrated database."""
        db_path = tmp_path / "test.db"
        Database(db_path=db_path).close()

        success, error = check_database_connectivity(db_path)

        assert success is True
        assert error is None

    def test_unmigrated_database(self, tmp_path: Path) -> None:
        """Should report missing schema when migrations have not run."""
        db_path = tmp_path / "empty.db"
        conn = sqlite3.connect(db_path)
        conn.execute("CREATE TABLE unrelated (id INTEGER)")
        conn.close()

        success, error = check_database_connectivity(db_path)

        assert success is False
        assert error is not None
        assert "schema is missing" in error

    def test_partially_migrated_database(self, tmp_path: Path) -> None:
        """Should name the tables that are missing."""
        db_path = tmp_path / "partial.db"
        conn = sqlite3.connect(db_path)
        conn.execute("CREATE TABLE terminals (id TEXT PRIMARY KEY)")
        conn.close()

        success, error = check_database_connectivity(db_path)

        assert success is False
        assert "weather_cache" in error
        assert "terminals" not in error.split(":")[0]

    def test_missing_parent_directory(self, tmp_path: Path) -> None:
        """Should fail with clear message for missing directory."""
        db_path = tmp_path / "nonexistent" / "subdir" / "test.db"
        success, error = check_database_connectivity(db_path)

        assert success is False
        assert error is not None
        assert "does not exist" in error
        assert "nonexistent" in error

    def test_readonly_directory(self, tmp_path: Path) -> None:
        """Should fail for non-writable directory."""
        readonly_dir = tmp_path / "readonly"
        readonly_dir.mkdir()

        with patch("resqwave.db.models.helpers.os.access", return_value=False):
            success, error = check_database_connectivity(readonly_dir / "test.db")

        assert success is False
        assert error is not None
        assert "not writable" in error
        assert os.path.isdir(readonly_dir)

    def test_database_locked_error(self, tmp_path: Path) -> None:
        """Should return a specific message for a locked database."""
        with patch(
            "resqwave.db.models.helpers.sqlite3.connect",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            success, error = check_database_connectivity(tmp_path / "test.db")

        assert success is False
        assert "locked" in error

    def test_unable_to_open_database(self, tmp_path: Path) -> None:
        """Should point at file permissions when the file cannot be opened."""
        with patch(
            "resqwave.db.models.helpers.sqlite3.connect",
            side_effect=sqlite3.OperationalError("unable to open database file"),
        ):
            success, error = check_database_connectivity(tmp_path / "test.db")

        assert success is False
        assert "Cannot open database file" in error

    def test_generic_operational_error(self, tmp_path: Path) -> None:
        with patch(
            "resqwave.db.models.helpers.sqlite3.connect",
            side_effect=sqlite3.OperationalError("disk I/O error"),
        ):
            success, error = check_database_connectivity(tmp_path / "test.db")

        assert success is False
        assert error == "Database error: disk I/O error"

    def test_uses_config_path_by_default(self, tmp_path: Path) -> None:
        """Should use Config.DATABASE_PATH when no path is given."""
        db_path = tmp_path / "default.db"
        Database(db_path=db_path).close()

        with patch("resqwave.db.models.helpers.Config") as mock_config:
            mock_config.DATABASE_PATH = db_path
            success, error = check_database_connectivity()

        assert success is True
        assert error is None
