"""Weather routes: cached per-terminal forecasts and cache administration.

Forecast reads go through the WeatherCacheManager, so an HTTP request only
reaches OpenWeather when the terminal's cache entry is missing or expired,
and simultaneous requests for the same terminal share one upstream call.
"""

from typing import Any

from apiflask import APIBlueprint

from resqwave.api.errors import raise_not_found_error
from resqwave.api.schemas import (
    CacheStatsResponse,
    CleanupResponse,
    ForecastResponse,
    StatusResponse,
)
from resqwave.config import Config
from resqwave.utils.logging import get_logger
from resqwave.weather.cache_manager import get_weather_cache_manager

logger = get_logger(__name__)

api = APIBlueprint("weather", __name__, url_prefix="/api/weather", tag="Weather")


# ============================================================================
# Cache Administration Routes
# ============================================================================


@api.route("/cache/stats", methods=["GET"])
@api.output(CacheStatsResponse)
@api.doc(responses=[503])
def get_cache_stats() -> dict[str, Any]:
    """Cache statistics for the admin dashboard."""
    return get_weather_cache_manager().cache_stats().to_dict()


@api.route("/cache/cleanup", methods=["POST"])
@api.output(CleanupResponse)
@api.doc(responses=[503])
def cleanup_expired_caches() -> dict[str, Any]:
    """Delete expired cache entries."""
    deleted = get_weather_cache_manager().cleanup_expired()
    return {"deleted": deleted}


# ============================================================================
# Forecast Routes
# ============================================================================


@api.route("/<terminal_id>", methods=["GET"])
@api.output(ForecastResponse)
@api.doc(responses=[400, 404, 502, 503])
def get_forecast(terminal_id: str) -> dict[str, Any]:
    """Forecast for a terminal.

    fresh is false when the provider is down or slow and the response
    carries data older than the cache TTL.
    """
    bundle = get_weather_cache_manager().get_forecast(
        terminal_id, timeout=Config.WEATHER_REFRESH_WAIT_SECONDS
    )
    if not bundle.fresh:
        logger.warning(
            "Serving stale forecast",
            extra={"terminal_id": terminal_id, "fetched_at": bundle.fetched_at.isoformat()},
        )
    return bundle.to_dict()


@api.route("/<terminal_id>/refresh", methods=["POST"])
@api.output(ForecastResponse)
@api.doc(responses=[400, 404, 502, 503])
def refresh_forecast(terminal_id: str) -> dict[str, Any]:
    """Force a refresh from the weather provider, bypassing the cache."""
    bundle = get_weather_cache_manager().refresh(
        terminal_id, timeout=Config.WEATHER_REFRESH_WAIT_SECONDS
    )
    return bundle.to_dict()


@api.route("/<terminal_id>/cache", methods=["DELETE"])
@api.output(StatusResponse)
@api.doc(responses=[400, 404, 503])
def delete_cache(terminal_id: str) -> dict[str, Any]:
    """Drop a terminal's cached forecast."""
    if not get_weather_cache_manager().delete(terminal_id):
        raise_not_found_error("Weather cache")
    return {"status": "deleted"}
