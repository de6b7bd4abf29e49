from .constants import DEFAULT_EPOCH
from .exceptions import (
    ClockRegression,
    DefaultNodeIdentityWarning,
    InvalidNodeIdentity,
    SnowflakeGenerationError,
    TimestampOutOfRange,
)
from .snowflake import Snowflake
from .snowflake_generator import SnowflakeGenerator

__all__ = [
    "DEFAULT_EPOCH",
    "ClockRegression",
    "DefaultNodeIdentityWarning",
    "InvalidNodeIdentity",
    "Snowflake",
    "SnowflakeGenerationError",
    "SnowflakeGenerator",
    "TimestampOutOfRange",
]
