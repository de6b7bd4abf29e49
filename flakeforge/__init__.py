from .snowflake import (
    DEFAULT_EPOCH,
    ClockRegression,
    DefaultNodeIdentityWarning,
    InvalidNodeIdentity,
    Snowflake,
    SnowflakeGenerationError,
    SnowflakeGenerator,
    TimestampOutOfRange,
)
from .env import Env, load_env

__all__ = [
    "DEFAULT_EPOCH",
    "ClockRegression",
    "DefaultNodeIdentityWarning",
    "Env",
    "InvalidNodeIdentity",
    "Snowflake",
    "SnowflakeGenerationError",
    "SnowflakeGenerator",
    "TimestampOutOfRange",
    "load_env",
]
