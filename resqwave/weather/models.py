"""Forecast data types shared by the provider, the store and the cache manager."""

from calendar import timegm
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class HourlyForecast:
    """One forecast step (OpenWeather free tier: 3-hour resolution)."""

    timestamp: int  # Unix seconds
    time: str  # ISO datetime (UTC)
    temperature: int  # Celsius
    feels_like: int  # Celsius
    humidity: int  # percentage
    pressure: int  # hPa
    wind_speed: int  # km/h
    description: str
    icon: str
    precipitation: float  # probability of precipitation, percentage (0-100)


@dataclass
class DailyForecast:
    """Daily summary aggregated from the 3-hour steps of one calendar day."""

    day: str  # "Today", "Tomorrow" or weekday name
    date: str  # ISO date
    high: int
    low: int
    condition: str  # Most common description of the day
    icon: str
    humidity: int  # Average, percentage
    wind_speed: int  # Average, km/h


@dataclass
class ForecastData:
    """What the weather provider returns for one terminal."""

    hourly: list[HourlyForecast] = field(default_factory=list)
    weekly: list[DailyForecast] = field(default_factory=list)


@dataclass
class ForecastBundle:
    """Forecast served to callers.

    fresh is False only when the cached entry had expired and the provider
    could not be reached, so consumers (risk analysis, dashboards) can lower
    their confidence accordingly.
    """

    terminal_id: str
    hourly: list[HourlyForecast]
    weekly: list[DailyForecast]
    fresh: bool
    fetched_at: datetime
    expires_at: datetime
    refresh_count: int
    current: HourlyForecast | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON API responses (camelCase keys)."""
        return {
            "terminalId": self.terminal_id,
            "fresh": self.fresh,
            "current": asdict(self.current) if self.current else None,
            "hourly": [asdict(p) for p in self.hourly],
            "weekly": [asdict(d) for d in self.weekly],
            "fetchedAt": self.fetched_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
            "refreshCount": self.refresh_count,
        }


@dataclass
class CacheStats:
    """Aggregate view of the weather cache for the admin dashboard."""

    total: int
    valid: int
    expired: int
    total_refreshes: int
    oldest_fetched_at: datetime | None
    newest_fetched_at: datetime | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalCaches": self.total,
            "validCaches": self.valid,
            "expiredCaches": self.expired,
            "totalRefreshes": self.total_refreshes,
            "oldestCache": self.oldest_fetched_at.isoformat() if self.oldest_fetched_at else None,
            "newestCache": self.newest_fetched_at.isoformat() if self.newest_fetched_at else None,
        }


def closest_to(hourly: list[HourlyForecast], now: datetime) -> HourlyForecast | None:
    """Pick the forecast step closest to now, used as "current" conditions.

    now must be naive UTC, like every timestamp in the cache.
    """
    if not hourly:
        return None
    now_ts = timegm(now.timetuple())
    return min(hourly, key=lambda p: abs(p.timestamp - now_ts))
