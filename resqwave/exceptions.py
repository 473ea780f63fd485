"""Weather cache error taxonomy.

Routes translate these into the standard API error envelope
(see resqwave.api.errors); everything else lets them propagate.
"""


class WeatherCacheError(Exception):
    """Base class for weather cache errors."""


class InvalidTerminal(WeatherCacheError):
    """Terminal identifier is empty or malformed."""

    def __init__(self, terminal_id: object, reason: str) -> None:
        self.terminal_id = terminal_id
        self.reason = reason
        super().__init__(f"Invalid terminal id {terminal_id!r}: {reason}")


class TerminalNotFound(WeatherCacheError):
    """Terminal is well-formed but unknown, so there are no coordinates to query."""

    def __init__(self, terminal_id: str) -> None:
        self.terminal_id = terminal_id
        super().__init__(f"Terminal {terminal_id} not found")


class UpstreamUnavailable(WeatherCacheError):
    """Weather provider failed or timed out and no cached data can be served."""

    def __init__(self, terminal_id: str, message: str = "Weather provider unavailable") -> None:
        self.terminal_id = terminal_id
        super().__init__(f"{message} (terminal {terminal_id})")


class StoreFailure(WeatherCacheError):
    """The persistence store could not be read or written."""

    def __init__(self, operation: str, cause: Exception) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Weather store failed to {operation}: {cause}")
