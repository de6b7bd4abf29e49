from .models import Entry, LogLevel


class SnowflakeTrace(Entry, kw_only=True):
    worker_id: int
    datacenter_id: int
    snowflake_id: int
    sequence: int
    level: LogLevel = LogLevel.TRACE

class SnowflakeDebug(Entry, kw_only=True):
    worker_id: int
    datacenter_id: int
    waited_ms: int
    level: LogLevel = LogLevel.DEBUG

class ClockRegressionError(Entry, kw_only=True):
    worker_id: int
    datacenter_id: int
    last_timestamp: int
    current_timestamp: int
    magnitude_ms: int
    level: LogLevel = LogLevel.ERROR
