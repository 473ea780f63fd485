import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Config:
    # Base paths
    BASE_DIR = Path(__file__).parent.parent

    # OpenWeatherMap API
    OPENWEATHER_API_KEY: str = os.getenv("OPENWEATHER_API_KEY", "")
    OPENWEATHER_BASE_URL: str = os.getenv(
        "OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5"
    ).rstrip("/")
    WEATHER_API_TIMEOUT: float = float(os.getenv("WEATHER_API_TIMEOUT", "10"))  # seconds
    WEATHER_UNITS = "metric"

    # Forecast shape (OpenWeather free tier: 3-hour steps, 5 days)
    WEATHER_HOURLY_POINTS: int = int(os.getenv("WEATHER_HOURLY_POINTS", "16"))  # 16 x 3h = 48h
    WEATHER_WEEKLY_DAYS: int = int(os.getenv("WEATHER_WEEKLY_DAYS", "5"))

    # Weather cache
    WEATHER_CACHE_TTL_HOURS: float = float(os.getenv("WEATHER_CACHE_TTL_HOURS", "6"))
    # How long an HTTP request waits for a refresh before answering 502
    WEATHER_REFRESH_WAIT_SECONDS: float = float(os.getenv("WEATHER_REFRESH_WAIT_SECONDS", "30"))

    APP_VERSION: str = os.getenv("APP_VERSION", "0.1.0")

    # Server
    PORT: int = int(os.getenv("PORT", "8000"))
    FLASK_ENV: str = os.getenv("FLASK_ENV", "development")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Slow query logging (only active in development/debug mode)
    SLOW_QUERY_THRESHOLD_MS: int = int(os.getenv("SLOW_QUERY_THRESHOLD_MS", "100"))

    # Database
    DATABASE_PATH: Path = BASE_DIR / os.getenv("DATABASE_PATH", "resqwave.db")
    # Seconds a writer waits for another thread's write lock before failing
    DATABASE_BUSY_TIMEOUT: float = float(os.getenv("DATABASE_BUSY_TIMEOUT", "30"))

    # Terminal identifiers (matches the VARCHAR(255) column in the main backend)
    TERMINAL_ID_MAX_LENGTH = 255

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development mode."""
        return cls.FLASK_ENV == "development"

    @classmethod
    def is_testing(cls) -> bool:
        """Check if running in testing mode."""
        return cls.FLASK_ENV == "testing"

    @classmethod
    def validate(cls) -> list[str]:
        """Validate required configuration. Returns list of errors with clear guidance."""
        errors: list[str] = []

        if not cls.OPENWEATHER_API_KEY:
            errors.append(
                "OPENWEATHER_API_KEY is required. "
                "Get your API key from https://home.openweathermap.org/api_keys and set it in .env"
            )

        if cls.PORT < 1 or cls.PORT > 65535:
            errors.append(f"PORT must be between 1 and 65535, got {cls.PORT}")

        if cls.WEATHER_API_TIMEOUT <= 0:
            errors.append(f"WEATHER_API_TIMEOUT must be positive, got {cls.WEATHER_API_TIMEOUT}")

        if cls.WEATHER_CACHE_TTL_HOURS <= 0:
            errors.append(
                f"WEATHER_CACHE_TTL_HOURS must be positive, got {cls.WEATHER_CACHE_TTL_HOURS}"
            )

        if cls.WEATHER_HOURLY_POINTS < 1 or cls.WEATHER_HOURLY_POINTS > 40:
            # /forecast returns at most 40 steps (5 days x 8)
            errors.append(
                f"WEATHER_HOURLY_POINTS must be between 1 and 40, got {cls.WEATHER_HOURLY_POINTS}"
            )

        if cls.WEATHER_WEEKLY_DAYS < 1:
            errors.append(f"WEATHER_WEEKLY_DAYS must be at least 1, got {cls.WEATHER_WEEKLY_DAYS}")

        if cls.WEATHER_REFRESH_WAIT_SECONDS <= 0:
            errors.append(
                "WEATHER_REFRESH_WAIT_SECONDS must be positive, "
                f"got {cls.WEATHER_REFRESH_WAIT_SECONDS}"
            )

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if cls.LOG_LEVEL not in valid_log_levels:
            errors.append(
                f"LOG_LEVEL '{cls.LOG_LEVEL}' is not valid. "
                f"Valid levels: {', '.join(sorted(valid_log_levels))}"
            )

        return errors
