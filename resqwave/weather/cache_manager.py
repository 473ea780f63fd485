"""Per-terminal weather cache with lazy expiry and refresh de-duplication.

Reads are served from the weather_cache table while the entry is fresh
(now < expires_at). Once it expires, the next reader triggers a refresh
from the weather provider. Concurrent readers of the same terminal attach
to the refresh already in flight instead of starting their own, so the
provider is called at most once per terminal at any time. Each refresh runs
on its own "weather-refresh-<terminal>" thread, so a slow fetch for one
terminal never delays another.

If the provider fails, or the caller gives up waiting, and an expired entry
exists, its data is served with fresh=False. Without any entry the failure
surfaces as UpstreamUnavailable. Store errors always surface as StoreFailure.

Usage:
    manager = WeatherCacheManager(db, OpenWeatherProvider(db))
    bundle = manager.get_forecast("T1")
    if not bundle.fresh:
        ...  # provider down, data older than the TTL
"""

import contextvars
import sqlite3
import threading
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta
from typing import Any, Protocol, TypeVar

from resqwave.config import Config
from resqwave.db.models.dataclasses import WeatherCacheEntry
from resqwave.exceptions import InvalidTerminal, StoreFailure, UpstreamUnavailable
from resqwave.utils.clock import Clock, SystemClock
from resqwave.utils.logging import get_logger
from resqwave.weather.models import CacheStats, ForecastBundle, ForecastData, closest_to
from resqwave.weather.openweather import WeatherProvider

logger = get_logger(__name__)

T = TypeVar("T")

# Errors from the provider that allow falling back to a stale entry.
# requests.RequestException derives from OSError.
PROVIDER_ERRORS = (UpstreamUnavailable, OSError, ValueError)


class WeatherStore(Protocol):
    def get_weather_cache(self, terminal_id: str) -> WeatherCacheEntry | None: ...

    def upsert_weather_cache(
        self,
        terminal_id: str,
        forecast: ForecastData,
        fetched_at: datetime,
        expires_at: datetime,
    ) -> WeatherCacheEntry: ...

    def touch_weather_cache(self, terminal_id: str, accessed_at: datetime) -> None: ...

    def delete_weather_cache(self, terminal_id: str) -> bool: ...

    def cleanup_expired_weather_cache(self, now: datetime) -> int: ...

    def get_weather_cache_stats(self, now: datetime) -> dict[str, Any]: ...


def validate_terminal_id(terminal_id: object) -> str:
    """Check a terminal identifier before it reaches the cache or the provider.

    Raises:
        InvalidTerminal: If the identifier is empty or malformed
    """
    if not isinstance(terminal_id, str):
        raise InvalidTerminal(terminal_id, "must be a string")
    if not terminal_id.strip():
        raise InvalidTerminal(terminal_id, "must not be empty")
    if terminal_id != terminal_id.strip():
        raise InvalidTerminal(terminal_id, "must not have leading or trailing whitespace")
    if len(terminal_id) > Config.TERMINAL_ID_MAX_LENGTH:
        raise InvalidTerminal(
            terminal_id, f"must be at most {Config.TERMINAL_ID_MAX_LENGTH} characters"
        )
    if not terminal_id.isprintable():
        raise InvalidTerminal(terminal_id, "must not contain control characters")
    return terminal_id


class WeatherCacheManager:
    """Serves per-terminal forecasts, refreshing them when absent or expired.

    The in-flight registry maps terminal_id to the Future of the refresh
    currently running for it. It belongs to this instance, so every test can
    build a fresh manager and close() it afterwards.
    """

    def __init__(
        self,
        store: WeatherStore,
        provider: WeatherProvider,
        clock: Clock | None = None,
        ttl: timedelta | None = None,
    ) -> None:
        self.store = store
        self.provider = provider
        self.clock = clock or SystemClock()
        self.ttl = ttl or timedelta(hours=Config.WEATHER_CACHE_TTL_HOURS)
        # Both guarded by _inflight_lock; at most one worker per terminal
        self._inflight: dict[str, Future[ForecastBundle]] = {}
        self._workers: set[threading.Thread] = set()
        self._inflight_lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def get_forecast(self, terminal_id: str, timeout: float | None = None) -> ForecastBundle:
        """Get the forecast for a terminal, refreshing it if absent or expired.

        Args:
            terminal_id: Terminal identifier
            timeout: Max seconds to wait for a refresh. Giving up does not
                cancel the refresh; other waiters still get its result.

        Returns:
            ForecastBundle, with fresh=False if expired data was served because
            the provider failed or did not answer within timeout

        Raises:
            InvalidTerminal: Malformed terminal_id
            TerminalNotFound: Refresh needed but the terminal is not registered
            UpstreamUnavailable: Provider failed and nothing is cached
            StoreFailure: Database error
        """
        validate_terminal_id(terminal_id)
        now = self.clock.now()
        entry = self._store_call("read cache entry", self.store.get_weather_cache, terminal_id)

        if entry is not None and entry.is_fresh(now):
            self._store_call(
                "record cache read", self.store.touch_weather_cache, terminal_id, now
            )
            logger.debug(
                "Weather cache hit",
                extra={"terminal_id": terminal_id, "expires_at": entry.expires_at.isoformat()},
            )
            return self._bundle(entry, fresh=True, now=now)

        logger.info(
            "Weather cache miss" if entry is None else "Weather cache expired",
            extra={"terminal_id": terminal_id},
        )
        try:
            return self._wait(self._start_refresh(terminal_id, force=False), terminal_id, timeout)
        except UpstreamUnavailable as e:
            if entry is None:
                raise
            return self._serve_stale(entry, e)

    def refresh(self, terminal_id: str, timeout: float | None = None) -> ForecastBundle:
        """Refresh a terminal's forecast regardless of its expiry.

        Joins a refresh already in flight for the terminal. Unlike
        get_forecast(), a provider failure is never masked by stale data.
        """
        validate_terminal_id(terminal_id)
        logger.info("Manual weather refresh requested", extra={"terminal_id": terminal_id})
        return self._wait(self._start_refresh(terminal_id, force=True), terminal_id, timeout)

    def delete(self, terminal_id: str) -> bool:
        """Drop a terminal's cache entry. Returns True if one existed."""
        validate_terminal_id(terminal_id)
        deleted = self._store_call(
            "delete cache entry", self.store.delete_weather_cache, terminal_id
        )
        if deleted:
            logger.info("Weather cache deleted", extra={"terminal_id": terminal_id})
        return deleted

    def cleanup_expired(self) -> int:
        """Delete expired entries. Returns the number deleted."""
        count = self._store_call(
            "clean up expired entries",
            self.store.cleanup_expired_weather_cache,
            self.clock.now(),
        )
        logger.info("Expired weather caches cleaned up", extra={"deleted": count})
        return count

    def cache_stats(self) -> CacheStats:
        stats = self._store_call(
            "compute cache statistics", self.store.get_weather_cache_stats, self.clock.now()
        )
        return CacheStats(
            total=stats["total"],
            valid=stats["valid"],
            expired=stats["expired"],
            total_refreshes=stats["total_refreshes"],
            oldest_fetched_at=stats["oldest_fetched_at"],
            newest_fetched_at=stats["newest_fetched_at"],
        )

    def inflight_count(self) -> int:
        """Number of refreshes currently running."""
        with self._inflight_lock:
            return len(self._inflight)

    def close(self) -> None:
        """Reject new refreshes and wait for running ones to finish."""
        with self._inflight_lock:
            self._closed = True
            workers = list(self._workers)
        for worker in workers:
            worker.join()

    # ------------------------------------------------------------------
    # Refresh coordination
    # ------------------------------------------------------------------

    def _start_refresh(self, terminal_id: str, force: bool) -> Future[ForecastBundle]:
        """Return the in-flight refresh for the terminal, starting one if needed."""
        with self._inflight_lock:
            future = self._inflight.get(terminal_id)
            if future is not None:
                logger.debug("Joining in-flight weather refresh", extra={"terminal_id": terminal_id})
                return future
            future = Future()
            if self._closed:
                future.set_exception(
                    UpstreamUnavailable(terminal_id, "Weather refresh unavailable")
                )
                logger.error(
                    "Weather refresh requested after shutdown",
                    extra={"terminal_id": terminal_id},
                )
                return future

            # Run in the starting caller's context so worker logs keep its request_id
            context = contextvars.copy_context()
            worker = threading.Thread(
                target=context.run,
                args=(self._run_refresh, terminal_id, force, future),
                name=f"weather-refresh-{terminal_id}",
                daemon=True,
            )
            # Registered and started under the lock so close() never joins an unstarted thread
            try:
                worker.start()
            except RuntimeError as e:
                # Thread limit reached
                future.set_exception(
                    UpstreamUnavailable(terminal_id, "Weather refresh unavailable")
                )
                logger.error(
                    "Could not start weather refresh",
                    extra={"terminal_id": terminal_id, "error": str(e)},
                )
                return future
            self._inflight[terminal_id] = future
            self._workers.add(worker)
        return future

    def _run_refresh(self, terminal_id: str, force: bool, future: Future[ForecastBundle]) -> None:
        # Unregister before resolving: a caller arriving afterwards reads the
        # stored entry instead of joining a finished refresh.
        worker = threading.current_thread()
        try:
            bundle = self._refresh_entry(terminal_id, force)
        except Exception as e:
            self._release(terminal_id, future, worker)
            future.set_exception(e)
        else:
            self._release(terminal_id, future, worker)
            future.set_result(bundle)

    def _release(
        self, terminal_id: str, future: Future[ForecastBundle], worker: threading.Thread
    ) -> None:
        with self._inflight_lock:
            if self._inflight.get(terminal_id) is future:
                del self._inflight[terminal_id]
            self._workers.discard(worker)

    def _wait(
        self, future: Future[ForecastBundle], terminal_id: str, timeout: float | None
    ) -> ForecastBundle:
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            logger.warning(
                "Timed out waiting for weather refresh",
                extra={"terminal_id": terminal_id, "timeout": timeout},
            )
            raise UpstreamUnavailable(terminal_id, "Timed out waiting for weather refresh") from e

    def _refresh_entry(self, terminal_id: str, force: bool) -> ForecastBundle:
        """Fetch from the provider and store the result. Runs on a refresh thread."""
        now = self.clock.now()
        entry = self._store_call("read cache entry", self.store.get_weather_cache, terminal_id)

        if not force and entry is not None and entry.is_fresh(now):
            # A refresh finished between the caller's check and this one
            self._store_call(
                "record cache read", self.store.touch_weather_cache, terminal_id, now
            )
            return self._bundle(entry, fresh=True, now=now)

        try:
            forecast = self.provider.fetch_forecast(terminal_id)
        except sqlite3.Error as e:
            # The provider reads the terminal registry for coordinates
            logger.error(
                "Weather store failure",
                extra={"operation": "look up terminal", "error": str(e)},
                exc_info=True,
            )
            raise StoreFailure("look up terminal", e) from e
        except PROVIDER_ERRORS as e:
            if entry is not None and not force:
                return self._serve_stale(entry, e)

            logger.error(
                "Weather provider failed with no cached fallback",
                extra={"terminal_id": terminal_id, "error": str(e)},
            )
            if isinstance(e, UpstreamUnavailable):
                raise
            raise UpstreamUnavailable(terminal_id) from e

        fetched_at = self.clock.now()
        stored = self._store_call(
            "store refreshed forecast",
            self.store.upsert_weather_cache,
            terminal_id,
            forecast,
            fetched_at,
            fetched_at + self.ttl,
        )
        logger.info(
            "Weather cache refreshed",
            extra={
                "terminal_id": terminal_id,
                "refresh_count": stored.refresh_count,
                "expires_at": stored.expires_at.isoformat(),
            },
        )
        return self._bundle(stored, fresh=True, now=fetched_at)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _serve_stale(self, entry: WeatherCacheEntry, error: Exception) -> ForecastBundle:
        """Answer with an expired entry after a failed or overdue refresh."""
        now = self.clock.now()
        logger.warning(
            "Weather refresh unavailable, serving stale cache",
            extra={
                "terminal_id": entry.terminal_id,
                "error": str(error),
                "fetched_at": entry.fetched_at.isoformat(),
            },
        )
        self._store_call(
            "record cache read", self.store.touch_weather_cache, entry.terminal_id, now
        )
        return self._bundle(entry, fresh=False, now=now)

    def _store_call(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return func(*args)
        except sqlite3.Error as e:
            logger.error(
                "Weather store failure",
                extra={"operation": operation, "error": str(e)},
                exc_info=True,
            )
            raise StoreFailure(operation, e) from e

    @staticmethod
    def _bundle(entry: WeatherCacheEntry, fresh: bool, now: datetime) -> ForecastBundle:
        return ForecastBundle(
            terminal_id=entry.terminal_id,
            hourly=entry.hourly_forecast,
            weekly=entry.weekly_forecast,
            fresh=fresh,
            fetched_at=entry.fetched_at,
            expires_at=entry.expires_at,
            refresh_count=entry.refresh_count,
            current=closest_to(entry.hourly_forecast, now),
        )


# Process-wide manager (created on first use, lazy initialization)
_manager: WeatherCacheManager | None = None
_manager_lock = threading.Lock()


def get_weather_cache_manager() -> WeatherCacheManager:
    """Get or create the manager backed by the global database and OpenWeather."""
    global _manager
    with _manager_lock:
        if _manager is None:
            from resqwave.db.models import db
            from resqwave.weather.openweather import OpenWeatherProvider

            _manager = WeatherCacheManager(db, OpenWeatherProvider(db))
            logger.debug(
                "Created weather cache manager",
                extra={"ttl_hours": Config.WEATHER_CACHE_TTL_HOURS},
            )
        return _manager


def shutdown_weather_cache_manager() -> None:
    """Let running refreshes finish and drop the process-wide manager.

    Registered with atexit by the server entry point.
    """
    global _manager
    with _manager_lock:
        manager, _manager = _manager, None
    if manager is not None:
        manager.close()
        logger.info("Weather cache manager shut down")
