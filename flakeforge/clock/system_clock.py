from time import time_ns


class SystemClock:
    """
    Wall-clock millisecond reader.

    Reads the system clock on every call. Nothing is cached and
    backward adjustments are passed through as-is, so callers that
    require monotonic readings must check for regression themselves.
    """

    def now_ms(self) -> int:
        return time_ns() // 1_000_000
