"""Time source abstraction so cache expiry can be tested without sleeping."""

from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Current time as naive UTC."""
        ...


class SystemClock:
    """Wall clock (naive UTC, matching timestamps stored in SQLite)."""

    def now(self) -> datetime:
        return datetime.now(UTC).replace(tzinfo=None)
