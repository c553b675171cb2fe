"""
Screening Error Types

Only configuration and device errors are meant to reach the caller.
Numerical edge cases are handled with fallbacks where they occur.
"""


class ScreeningError(Exception):
    """Base class for all screening core errors."""


class OutOfOrderSampleError(ScreeningError):
    """A sample's timestamp precedes the last accepted sample."""

    def __init__(self, timestamp_ms: float, last_timestamp_ms: float):
        self.timestamp_ms = timestamp_ms
        self.last_timestamp_ms = last_timestamp_ms
        super().__init__(
            f"Sample at {timestamp_ms:.1f}ms precedes last sample at {last_timestamp_ms:.1f}ms"
        )


class InvalidConfigError(ScreeningError):
    """Session configuration is outside its valid range."""


class DeviceUnavailableError(ScreeningError):
    """Raw-stream acquisition failed for a session."""


class SessionNotFoundError(ScreeningError):
    """No session exists for the given handle."""


class SessionClosedError(ScreeningError):
    """The session is no longer accepting samples."""
