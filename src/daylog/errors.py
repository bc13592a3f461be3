"""Exceptions raised by the time-accounting engine."""


class DaylogError(Exception):
    """Base class for all daylog errors."""
    pass


class InvalidTransition(DaylogError):
    """Raised when start/stop is called in the wrong session state."""

    def __init__(self, action: str, status: str) -> None:
        self.action = action
        self.status = status
        super().__init__(f"Cannot {action} while session is {status}")


class InvalidDuration(DaylogError, ValueError):
    """Raised when a negative or non-finite duration reaches the store."""
    pass


class InvalidRange(DaylogError, ValueError):
    """Raised when a report range starts after it ends."""

    def __init__(self, start, end) -> None:
        self.start = start
        self.end = end
        super().__init__(f"Start date {start} must be before or equal to end date {end}")


class StorageUnavailable(DaylogError):
    """Raised when the persistence backend rejects a read/write or times out."""
    pass
