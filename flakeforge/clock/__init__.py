from .clock_source import ClockSource
from .system_clock import SystemClock

__all__ = [
    "ClockSource",
    "SystemClock",
]
