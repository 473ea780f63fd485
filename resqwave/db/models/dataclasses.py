"""Database model dataclasses.

These dataclasses represent the entities stored in the database. They are
returned by Database methods and used throughout the application.
"""

from dataclasses import dataclass, field
from datetime import datetime

from resqwave.weather.models import DailyForecast, HourlyForecast


@dataclass
class Terminal:
    """A deployed alert terminal and its location."""

    id: str
    name: str
    latitude: float
    longitude: float
    created_at: datetime


@dataclass
class WeatherCacheEntry:
    """Cached forecast for one terminal.

    expires_at is always fetched_at + TTL; both are naive UTC.
    """

    terminal_id: str
    fetched_at: datetime
    expires_at: datetime
    refresh_count: int
    hourly_forecast: list[HourlyForecast] = field(default_factory=list)
    weekly_forecast: list[DailyForecast] = field(default_factory=list)
    last_accessed_at: datetime | None = None

    def is_fresh(self, now: datetime) -> bool:
        """Fresh strictly before expires_at; stale at and after it."""
        return now < self.expires_at
