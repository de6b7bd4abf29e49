from .config import LoggingConfig, LogLevelMap, StreamType
from .models import Entry, Log, LogLevel, LogLevelName
from .streams import Logger, LoggerContext, LoggerStream

__all__ = [
    "Entry",
    "Log",
    "LogLevel",
    "LogLevelMap",
    "LogLevelName",
    "Logger",
    "LoggerContext",
    "LoggerStream",
    "LoggingConfig",
    "StreamType",
]
