"""Shared fixtures for daylog tests."""

from datetime import datetime

import pytest

from daylog.tracking import MemoryBackend


class FakeClock:
    """Controllable clock returning epoch milliseconds."""

    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def set(self, *args: int) -> int:
        """Jump to a local wall-clock time given as datetime() arguments."""
        self.now = int(datetime(*args).timestamp() * 1000)
        return self.now

    def advance(self, milliseconds: int) -> int:
        self.now += milliseconds
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    fake = FakeClock()
    fake.set(2026, 10, 19, 9, 0)
    return fake


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()
