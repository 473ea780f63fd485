"""OpenWeatherMap forecast provider.

Uses the free-tier 5 day / 3 hour forecast endpoint:
https://openweathermap.org/forecast5

A single /forecast call yields both views the dashboards need:
- hourly: the first 16 steps (48 hours at 3-hour resolution)
- weekly: the 40 steps grouped by local calendar day, first 5 days

Every failure (network error, timeout, HTTP error, malformed payload) is
reported as UpstreamUnavailable so the cache manager can decide whether a
stale entry can be served instead.
"""

from collections import Counter
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

import requests

from resqwave.config import Config
from resqwave.db.models.dataclasses import Terminal
from resqwave.exceptions import TerminalNotFound, UpstreamUnavailable
from resqwave.utils.logging import get_logger
from resqwave.weather.models import DailyForecast, ForecastData, HourlyForecast

logger = get_logger(__name__)

MS_TO_KMH = 3.6


class TerminalLookup(Protocol):
    def get_terminal(self, terminal_id: str) -> Terminal | None: ...


class WeatherProvider(Protocol):
    """Upstream collaborator of the weather cache."""

    def fetch_forecast(self, terminal_id: str) -> ForecastData: ...


def _utc(unix_seconds: int) -> datetime:
    """Naive UTC datetime for a Unix timestamp."""
    return datetime.fromtimestamp(unix_seconds, UTC).replace(tzinfo=None)


def _kmh(speed_ms: float) -> int:
    return round(speed_ms * MS_TO_KMH)


def parse_hourly(items: list[dict[str, Any]]) -> list[HourlyForecast]:
    """Convert /forecast list items to forecast steps."""
    hourly: list[HourlyForecast] = []
    for item in items:
        main = item["main"]
        weather = item["weather"][0]
        hourly.append(
            HourlyForecast(
                timestamp=int(item["dt"]),
                time=_utc(item["dt"]).isoformat(),
                temperature=round(main["temp"]),
                feels_like=round(main.get("feels_like", main["temp"])),
                humidity=int(main["humidity"]),
                pressure=int(main.get("pressure", 0)),
                wind_speed=_kmh(item.get("wind", {}).get("speed", 0)),
                description=weather["description"],
                icon=weather["icon"],
                precipitation=round(float(item.get("pop", 0)) * 100, 1),
            )
        )
    return hourly


def _most_common(values: list[str]) -> str:
    # Counter keeps first-seen order for ties, so the earliest condition wins
    return Counter(values).most_common(1)[0][0]


def aggregate_daily(
    items: list[dict[str, Any]], utc_offset_seconds: int = 0, days: int = 5
) -> list[DailyForecast]:
    """Group /forecast list items by local calendar day.

    Args:
        items: Raw /forecast list items (3-hour steps)
        utc_offset_seconds: The location's UTC offset (response "city.timezone")
        days: Number of days to return

    Returns:
        Daily summaries in chronological order, first labelled "Today",
        second "Tomorrow", the rest by weekday name
    """
    buckets: dict[str, dict[str, list[Any]]] = {}
    for item in items:
        local = _utc(item["dt"]) + timedelta(seconds=utc_offset_seconds)
        bucket = buckets.setdefault(
            local.date().isoformat(),
            {"temps": [], "descriptions": [], "icons": [], "humidity": [], "wind": []},
        )
        bucket["temps"].append(item["main"]["temp"])
        bucket["descriptions"].append(item["weather"][0]["description"])
        bucket["icons"].append(item["weather"][0]["icon"])
        bucket["humidity"].append(item["main"]["humidity"])
        bucket["wind"].append(item.get("wind", {}).get("speed", 0))

    daily: list[DailyForecast] = []
    for index, (date_str, bucket) in enumerate(sorted(buckets.items())[:days]):
        if index == 0:
            label = "Today"
        elif index == 1:
            label = "Tomorrow"
        else:
            label = datetime.fromisoformat(date_str).strftime("%A")
        daily.append(
            DailyForecast(
                day=label,
                date=date_str,
                high=round(max(bucket["temps"])),
                low=round(min(bucket["temps"])),
                condition=_most_common(bucket["descriptions"]),
                icon=_most_common(bucket["icons"]),
                humidity=round(sum(bucket["humidity"]) / len(bucket["humidity"])),
                wind_speed=_kmh(sum(bucket["wind"]) / len(bucket["wind"])),
            )
        )
    return daily


class OpenWeatherProvider:
    """Fetches forecasts for terminals from OpenWeatherMap.

    The terminal's coordinates are looked up in the terminal registry, so
    callers only deal with terminal identifiers.
    """

    def __init__(
        self,
        terminals: TerminalLookup,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.terminals = terminals
        self.api_key = api_key if api_key is not None else Config.OPENWEATHER_API_KEY
        self.base_url = base_url or Config.OPENWEATHER_BASE_URL
        self.timeout = timeout if timeout is not None else Config.WEATHER_API_TIMEOUT

    def fetch_forecast(self, terminal_id: str) -> ForecastData:
        """Fetch the forecast for a registered terminal.

        Raises:
            TerminalNotFound: If the terminal is not registered
            UpstreamUnavailable: If OpenWeather cannot be reached or answers badly
        """
        terminal = self.terminals.get_terminal(terminal_id)
        if terminal is None:
            raise TerminalNotFound(terminal_id)
        return self.fetch_for_coordinates(terminal_id, terminal.latitude, terminal.longitude)

    def fetch_for_coordinates(
        self, terminal_id: str, latitude: float, longitude: float
    ) -> ForecastData:
        logger.debug(
            "Fetching forecast from OpenWeather",
            extra={"terminal_id": terminal_id, "lat": latitude, "lon": longitude},
        )
        try:
            response = requests.get(
                f"{self.base_url}/forecast",
                params={
                    "lat": latitude,
                    "lon": longitude,
                    "appid": self.api_key,
                    "units": Config.WEATHER_UNITS,
                },
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.warning(
                "OpenWeather request timed out",
                extra={"terminal_id": terminal_id, "timeout": self.timeout},
            )
            raise UpstreamUnavailable(terminal_id, "Weather provider timed out") from e
        except requests.RequestException as e:
            logger.warning(
                "OpenWeather request failed",
                extra={"terminal_id": terminal_id, "error": str(e)},
            )
            raise UpstreamUnavailable(terminal_id) from e

        if response.status_code >= 400:
            logger.warning(
                "OpenWeather API error",
                extra={
                    "terminal_id": terminal_id,
                    "status_code": response.status_code,
                    "error": response.text[:200],
                },
            )
            raise UpstreamUnavailable(
                terminal_id, f"Weather provider error ({response.status_code})"
            )

        try:
            data = response.json()
            items = data["list"]
            if not items:
                raise ValueError("Empty forecast list")
            offset = int(data.get("city", {}).get("timezone", 0))
            forecast = ForecastData(
                hourly=parse_hourly(items[: Config.WEATHER_HOURLY_POINTS]),
                weekly=aggregate_daily(items, offset, Config.WEATHER_WEEKLY_DAYS),
            )
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(
                "Malformed OpenWeather response",
                extra={"terminal_id": terminal_id, "error": str(e)},
            )
            raise UpstreamUnavailable(terminal_id, "Malformed weather provider response") from e

        logger.info(
            "Forecast fetched",
            extra={
                "terminal_id": terminal_id,
                "hourly_points": len(forecast.hourly),
                "weekly_days": len(forecast.weekly),
            },
        )
        return forecast
