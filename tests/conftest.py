"""Shared pytest fixtures for ResQWave weather service tests."""

import os
import tempfile
from collections.abc import Generator
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest
from flask import Flask
from flask.testing import FlaskClient

if TYPE_CHECKING:
    from resqwave.db.models import Database, Terminal
    from resqwave.weather.cache_manager import WeatherCacheManager

# Set test environment variables before importing app modules
os.environ["FLASK_ENV"] = "testing"
os.environ["OPENWEATHER_API_KEY"] = "test-api-key"
# The global db is created on import; keep it out of the working tree
os.environ["DATABASE_PATH"] = str(Path(tempfile.mkdtemp(prefix="resqwave-tests-")) / "global.db")

from tests.fixtures.weather import FakeClock, FakeProvider  # noqa: E402


# -----------------------------------------------------------------------------
# Database fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(scope="session")
def temp_db_dir() -> Generator[Path]:
    """Create a temporary directory for test databases."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_db_path(temp_db_dir: Path, request: pytest.FixtureRequest) -> Path:
    """Create unique database path for each test."""
    # Use test name to create unique DB file
    test_name = request.node.name.replace("[", "_").replace("]", "_").replace("/", "_")
    return temp_db_dir / f"{test_name}.db"


@pytest.fixture
def test_database(test_db_path: Path) -> Generator["Database"]:
    """Create isolated test database for each test."""
    from resqwave.db.models import Database

    db = Database(db_path=test_db_path)
    yield db
    db.close()


@pytest.fixture
def terminals(test_database: "Database") -> list["Terminal"]:
    """Register two terminals (cache rows need an existing terminal)."""
    return [
        test_database.create_terminal("T1", "Barangay Marulas", 14.6760, 120.9626),
        test_database.create_terminal("T2", "Barangay Malinta", 14.6900, 120.9700),
    ]


# -----------------------------------------------------------------------------
# Weather cache fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def manager(
    test_database: "Database",
    terminals: list["Terminal"],
    fake_provider: FakeProvider,
    fake_clock: FakeClock,
) -> Generator["WeatherCacheManager"]:
    """Manager over the test database with a fake provider and clock."""
    from resqwave.weather.cache_manager import WeatherCacheManager

    mgr = WeatherCacheManager(
        test_database,
        fake_provider,
        clock=fake_clock,
        ttl=timedelta(hours=6),
    )
    yield mgr
    if fake_provider.gate is not None:
        fake_provider.gate.set()
    mgr.close()


# -----------------------------------------------------------------------------
# Flask app fixtures
# -----------------------------------------------------------------------------



@pytest.fixture
def app(test_database: "Database", manager: "WeatherCacheManager") -> Generator[Flask]:
    """Create Flask test application over the test database and manager.

    Routes reach the database through the module-level `db` and the cache
    through the process-wide manager, so both are patched for the test.
    """
    with patch("resqwave.db.models.db", test_database):
        with patch("resqwave.api.routes.terminals.db", test_database):
            with patch("resqwave.weather.cache_manager._manager", manager):
                from resqwave.app import create_app

                flask_app = create_app()
                flask_app.config["TESTING"] = True
                flask_app.config["DATABASE_PATH"] = test_database.db_path
                yield flask_app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create Flask test client."""
    return app.test_client()
