from __future__ import annotations

import threading
import warnings
from typing import TYPE_CHECKING

from flakeforge.clock import ClockSource, SystemClock
from flakeforge.logging import Logger, LoggingConfig
from flakeforge.logging.flakeforge_logging_models import (
    ClockRegressionError,
    SnowflakeDebug,
    SnowflakeTrace,
)

from .constants import (
    DATACENTER_ID_SHIFT,
    DEFAULT_EPOCH,
    MAX_DATACENTER_ID,
    MAX_SEQ,
    MAX_TIMESTAMP,
    MAX_WORKER_ID,
    TIMESTAMP_SHIFT,
    WORKER_ID_SHIFT,
)
from .exceptions import (
    ClockRegression,
    DefaultNodeIdentityWarning,
    InvalidNodeIdentity,
    TimestampOutOfRange,
)
from .snowflake import Snowflake

if TYPE_CHECKING:
    from flakeforge.env import Env


def _validate_node_id(field: str, value: int, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidNodeIdentity(field, value, maximum)

    if value < 0 or value > maximum:
        raise InvalidNodeIdentity(field, value, maximum)

    return value


class SnowflakeGenerator:
    """
    Thread-safe generator of 64-bit, time-ordered snowflake identifiers.

    Layout: timestamp offset (41) | datacenter_id (5) | worker_id (5) | sequence (12).

    Ids from one instance are strictly increasing. Ids from different
    instances never collide as long as each running instance has its own
    (datacenter_id, worker_id) pair, which the caller must provision.

    - Up to 4096 ids per millisecond. Once the sequence is exhausted the
      generator spins on the clock until the next millisecond.
    - A clock reading earlier than the last used millisecond raises
      ClockRegression and leaves the generator state untouched.
    - A clock reading before the epoch, or more than 2^41 - 1 ms after it,
      raises TimestampOutOfRange, also leaving state untouched.
    """

    def __init__(
        self,
        worker_id: int | None = None,
        datacenter_id: int | None = None,
        *,
        epoch: int = DEFAULT_EPOCH,
        clock: ClockSource | None = None,
        logger: Logger | None = None,
    ) -> None:
        if worker_id is None or datacenter_id is None:
            warnings.warn(
                "SnowflakeGenerator created without an explicit node identity, "
                "defaulting to worker_id=0 and datacenter_id=0. Ids will collide "
                "with any other instance using the same defaults.",
                DefaultNodeIdentityWarning,
                stacklevel=2,
            )

        if worker_id is None:
            worker_id = 0

        if datacenter_id is None:
            datacenter_id = 0

        self._worker_id = _validate_node_id("worker_id", worker_id, MAX_WORKER_ID)
        self._datacenter_id = _validate_node_id(
            "datacenter_id",
            datacenter_id,
            MAX_DATACENTER_ID,
        )

        if isinstance(epoch, bool) or not isinstance(epoch, int) or epoch < 0:
            raise ValueError(f"epoch must be a non-negative integer, got {epoch!r}")

        self._epoch = epoch
        self._clock = clock or SystemClock()
        self._logger = logger or Logger()

        self._node = (datacenter_id << DATACENTER_ID_SHIFT) | (
            worker_id << WORKER_ID_SHIFT
        )
        self._last_timestamp = -1
        self._seq = 0
        self._lock = threading.Lock()

    @classmethod
    def from_env(
        cls,
        env: Env,
        clock: ClockSource | None = None,
    ) -> SnowflakeGenerator:
        LoggingConfig().update(
            log_level=env.FLAKEFORGE_LOG_LEVEL,
            log_output=env.FLAKEFORGE_LOG_OUTPUT,
        )

        return cls(
            env.FLAKEFORGE_WORKER_ID,
            env.FLAKEFORGE_DATACENTER_ID,
            epoch=env.FLAKEFORGE_EPOCH,
            clock=clock,
        )

    @property
    def worker_id(self) -> int:
        return self._worker_id

    @property
    def datacenter_id(self) -> int:
        return self._datacenter_id

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def last_timestamp(self) -> int:
        return self._last_timestamp

    @property
    def sequence(self) -> int:
        return self._seq

    def __iter__(self):
        return self

    def __next__(self) -> int:
        return self.generate_sync()

    def generate_sync(self) -> int:
        """
        Produce the next id. Blocks for at most the remainder of the
        current millisecond when its sequence space is exhausted.

        Raises ClockRegression if the clock reads earlier than the last
        millisecond an id was produced for.
        """
        snowflake_id, _ = self._next()
        return snowflake_id

    async def generate(self) -> int:
        """
        Async generation. Shares the thread lock with generate_sync() and
        never awaits while holding it, so tasks and threads can mix freely.
        """
        try:
            snowflake_id, waited_ms = self._next()

        except ClockRegression as err:
            await self._logger.log(
                ClockRegressionError(
                    message=str(err),
                    worker_id=self._worker_id,
                    datacenter_id=self._datacenter_id,
                    last_timestamp=err.last_timestamp,
                    current_timestamp=err.current_timestamp,
                    magnitude_ms=err.magnitude_ms,
                ),
                name="snowflake",
            )

            raise

        if waited_ms > 0:
            await self._logger.log(
                SnowflakeDebug(
                    message="Sequence exhausted, advanced to next millisecond",
                    worker_id=self._worker_id,
                    datacenter_id=self._datacenter_id,
                    waited_ms=waited_ms,
                ),
                name="snowflake",
            )

        await self._logger.log(
            SnowflakeTrace(
                message=f"Generated id {snowflake_id}",
                worker_id=self._worker_id,
                datacenter_id=self._datacenter_id,
                snowflake_id=snowflake_id,
                sequence=snowflake_id & MAX_SEQ,
            ),
            name="snowflake",
        )

        return snowflake_id

    def decode(self, snowflake_id: int) -> Snowflake:
        return Snowflake.parse(snowflake_id)

    def timestamp_of(self, snowflake_id: int) -> int:
        """Unix milliseconds at which the id was produced."""
        return Snowflake.parse(snowflake_id).unix_ms(self._epoch)

    def _next(self) -> tuple[int, int]:
        with self._lock:
            current = self._clock.now_ms()

            if current < self._last_timestamp:
                raise ClockRegression(self._last_timestamp, current)

            waited_ms = 0
            sequence = 0

            if current == self._last_timestamp:
                sequence = (self._seq + 1) & MAX_SEQ

                if sequence == 0:
                    current = self._wait_for_next_millis(self._last_timestamp)
                    waited_ms = current - self._last_timestamp

            offset = current - self._epoch
            if offset < 0 or offset > MAX_TIMESTAMP:
                raise TimestampOutOfRange(current, self._epoch, MAX_TIMESTAMP)

            self._seq = sequence
            self._last_timestamp = current

            snowflake_id = (
                (offset << TIMESTAMP_SHIFT)
                | self._node
                | sequence
            )

            return snowflake_id, waited_ms

    def _wait_for_next_millis(self, last_timestamp: int) -> int:
        current = self._clock.now_ms()
        while current <= last_timestamp:
            current = self._clock.now_ms()

        return current
