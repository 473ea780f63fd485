"""Unit tests for configuration loading and validation."""

import os
from collections.abc import Generator
from importlib import reload
from pathlib import Path
from unittest.mock import patch

import pytest

import resqwave.config


@pytest.fixture(autouse=True)
def restore_config() -> Generator[None]:
    """Reload Config from the real environment after each test."""
    yield
    reload(resqwave.config)


def load_config(**env: str) -> type:
    """Reload the config module with patched environment variables."""
    with patch.dict(os.environ, env):
        reload(resqwave.config)
        return resqwave.config.Config


class TestConfigDefaults:
    """Tests for default values and environment parsing."""

    def test_cache_defaults(self) -> None:
        with patch.dict(os.environ):
            for key in ("WEATHER_CACHE_TTL_HOURS", "WEATHER_HOURLY_POINTS", "WEATHER_WEEKLY_DAYS"):
                os.environ.pop(key, None)
            reload(resqwave.config)
            config = resqwave.config.Config

        assert config.WEATHER_CACHE_TTL_HOURS == 6
        assert config.WEATHER_HOURLY_POINTS == 16
        assert config.WEATHER_WEEKLY_DAYS == 5

    def test_ttl_from_environment(self) -> None:
        config = load_config(WEATHER_CACHE_TTL_HOURS="0.5")
        assert config.WEATHER_CACHE_TTL_HOURS == 0.5

    def test_base_url_trailing_slash_stripped(self) -> None:
        config = load_config(OPENWEATHER_BASE_URL="https://weather.example.com/data/2.5/")
        assert config.OPENWEATHER_BASE_URL == "https://weather.example.com/data/2.5"

    def test_log_level_uppercased(self) -> None:
        config = load_config(LOG_LEVEL="debug")
        assert config.LOG_LEVEL == "DEBUG"

    def test_relative_database_path_under_base_dir(self) -> None:
        config = load_config(DATABASE_PATH="data/resqwave.db")
        assert config.DATABASE_PATH == config.BASE_DIR / "data" / "resqwave.db"

    def test_absolute_database_path(self, tmp_path: Path) -> None:
        config = load_config(DATABASE_PATH=str(tmp_path / "abs.db"))
        assert config.DATABASE_PATH == tmp_path / "abs.db"

    def test_environment_helpers(self) -> None:
        config = load_config(FLASK_ENV="testing")
        assert config.is_testing() is True
        assert config.is_development() is False


class TestConfigValidation:
    """Tests for Config.validate() method."""

    def test_valid_configuration(self) -> None:
        config = load_config(OPENWEATHER_API_KEY="key", LOG_LEVEL="INFO", PORT="8000")
        assert config.validate() == []

    def test_missing_api_key(self) -> None:
        """Should require OPENWEATHER_API_KEY."""
        config = load_config(OPENWEATHER_API_KEY="")

        errors = config.validate()
        assert any("OPENWEATHER_API_KEY" in e for e in errors)

    def test_invalid_port(self) -> None:
        config = load_config(PORT="70000")
        assert any("PORT" in e for e in config.validate())

    def test_non_positive_ttl(self) -> None:
        config = load_config(WEATHER_CACHE_TTL_HOURS="0")
        assert any("WEATHER_CACHE_TTL_HOURS" in e for e in config.validate())

    def test_non_positive_api_timeout(self) -> None:
        config = load_config(WEATHER_API_TIMEOUT="-1")
        assert any("WEATHER_API_TIMEOUT" in e for e in config.validate())

    def test_hourly_points_above_provider_limit(self) -> None:
        config = load_config(WEATHER_HOURLY_POINTS="41")
        assert any("WEATHER_HOURLY_POINTS" in e for e in config.validate())

    def test_zero_refresh_wait(self) -> None:
        config = load_config(WEATHER_REFRESH_WAIT_SECONDS="0")
        assert any("WEATHER_REFRESH_WAIT_SECONDS" in e for e in config.validate())

    def test_invalid_log_level(self) -> None:
        config = load_config(LOG_LEVEL="VERBOSE")

        errors = config.validate()
        assert any("LOG_LEVEL" in e and "VERBOSE" in e for e in errors)
