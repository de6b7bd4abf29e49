from typing import Protocol, runtime_checkable


@runtime_checkable
class ClockSource(Protocol):
    def now_ms(self) -> int:
        """Current wall-clock time in unix milliseconds."""
        ...
