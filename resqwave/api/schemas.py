"""Pydantic schemas for API requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from resqwave.config import Config

# -----------------------------------------------------------------------------
# Request Schemas
# -----------------------------------------------------------------------------


class CreateTerminalRequest(BaseModel):
    """Schema for POST /api/terminals."""

    id: str = Field(..., min_length=1, max_length=Config.TERMINAL_ID_MAX_LENGTH)
    name: str = Field(..., min_length=1, max_length=200)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Terminal IDs appear in URLs and log lines."""
        if v != v.strip():
            raise ValueError("Terminal ID must not have leading or trailing whitespace")
        if "/" in v or not v.isprintable():
            raise ValueError("Terminal ID must not contain '/' or control characters")
        return v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


# -----------------------------------------------------------------------------
# Response Schemas
# -----------------------------------------------------------------------------
#
# Top-level responses use camelCase keys. Forecast points keep the snake_case
# keys of the stored forecast arrays.


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, serialize_by_alias=True)


class StatusResponse(BaseModel):
    status: str


class HealthResponse(BaseModel):
    status: str
    version: str | None = None


class ReadinessCheck(BaseModel):
    status: str
    message: str | None = None


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, ReadinessCheck]
    version: str | None = None


class TerminalResponse(CamelModel):
    id: str
    name: str
    latitude: float
    longitude: float
    created_at: str


class TerminalsListResponse(BaseModel):
    terminals: list[TerminalResponse]


class HourlyForecastResponse(BaseModel):
    timestamp: int
    time: str
    temperature: int
    feels_like: int
    humidity: int
    pressure: int
    wind_speed: int
    description: str
    icon: str
    precipitation: float


class DailyForecastResponse(BaseModel):
    day: str
    date: str
    high: int
    low: int
    condition: str
    icon: str
    humidity: int
    wind_speed: int


class ForecastResponse(CamelModel):
    """Forecast bundle; fresh is false when expired data is served."""

    terminal_id: str
    fresh: bool
    current: HourlyForecastResponse | None = None
    hourly: list[HourlyForecastResponse]
    weekly: list[DailyForecastResponse]
    fetched_at: str
    expires_at: str
    refresh_count: int


class CacheStatsResponse(CamelModel):
    total_caches: int
    valid_caches: int
    expired_caches: int
    total_refreshes: int
    oldest_cache: str | None = None
    newest_cache: str | None = None


class CleanupResponse(BaseModel):
    deleted: int
