"""
Pytest configuration for flakeforge tests.

Provides a controllable clock so generator behavior can be driven
millisecond by millisecond.
"""

from collections import deque

import pytest

from flakeforge.logging import LoggingConfig


class ManualClock:
    """
    Clock source returning a fixed time until told otherwise.

    Scheduled readings are consumed one per read before falling back to
    the current fixed time, which is updated to each scheduled reading.
    """

    def __init__(self, now: int) -> None:
        self._now = now
        self._scheduled: deque[int] = deque()
        self.reads = 0

    def now_ms(self) -> int:
        self.reads += 1

        if self._scheduled:
            self._now = self._scheduled.popleft()

        return self._now

    def set(self, now: int) -> None:
        self._now = now

    def advance(self, ms: int = 1) -> None:
        self._now += ms

    def schedule(self, *readings: int) -> None:
        self._scheduled.extend(readings)


@pytest.fixture
def manual_clock_factory():
    def create_clock(now: int) -> ManualClock:
        return ManualClock(now)

    return create_clock


@pytest.fixture(autouse=True)
def configure_logging():
    config = LoggingConfig()
    config.update(log_level="info", log_output="stderr")
    yield
    config.update(log_level="info", log_output="stderr")
