from __future__ import annotations

import datetime as dt
from typing import NamedTuple

from .constants import (
    DATACENTER_ID_SHIFT,
    MAX_DATACENTER_ID,
    MAX_SEQ,
    MAX_SNOWFLAKE,
    MAX_TIMESTAMP,
    MAX_WORKER_ID,
    TIMESTAMP_SHIFT,
    WORKER_ID_SHIFT,
)


class Snowflake(NamedTuple):
    """
    Decoded view of a 64-bit snowflake identifier.

    Structure (64 bits total, most significant first):
    - sign (1 bit): always 0
    - timestamp (41 bits): milliseconds elapsed since the generator epoch
    - datacenter_id (5 bits): deployment region/cluster (0-31)
    - worker_id (5 bits): node within the datacenter (0-31)
    - sequence (12 bits): ids produced within the same millisecond (0-4095)

    Field order matches bit significance, so tuple ordering and
    integer ordering agree.
    """

    timestamp: int
    datacenter_id: int
    worker_id: int
    sequence: int

    @classmethod
    def parse(cls, value: int) -> Snowflake:
        """Reverse the shift/mask encoding of an identifier."""
        if value < 0 or value > MAX_SNOWFLAKE:
            raise ValueError(
                f"Snowflake must be between 0 and {MAX_SNOWFLAKE}, got {value}"
            )

        return cls(
            timestamp=(value >> TIMESTAMP_SHIFT) & MAX_TIMESTAMP,
            datacenter_id=(value >> DATACENTER_ID_SHIFT) & MAX_DATACENTER_ID,
            worker_id=(value >> WORKER_ID_SHIFT) & MAX_WORKER_ID,
            sequence=value & MAX_SEQ,
        )

    def to_int(self) -> int:
        return (
            (self.timestamp << TIMESTAMP_SHIFT)
            | (self.datacenter_id << DATACENTER_ID_SHIFT)
            | (self.worker_id << WORKER_ID_SHIFT)
            | self.sequence
        )

    def unix_ms(self, epoch: int) -> int:
        return self.timestamp + epoch

    def datetime(self, epoch: int) -> dt.datetime:
        return dt.datetime.fromtimestamp(
            self.unix_ms(epoch) / 1000,
            tz=dt.UTC,
        )

    def __int__(self) -> int:
        return self.to_int()

    def __str__(self) -> str:
        return (
            f"Snowflake({self.timestamp}:{self.datacenter_id}:"
            f"{self.worker_id}:{self.sequence})"
        )
