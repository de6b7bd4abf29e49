import asyncio
import threading
import warnings
from concurrent.futures import ThreadPoolExecutor

import pytest

from flakeforge.logging import LoggingConfig
from flakeforge.snowflake import (
    DEFAULT_EPOCH,
    ClockRegression,
    DefaultNodeIdentityWarning,
    InvalidNodeIdentity,
    Snowflake,
    SnowflakeGenerationError,
    SnowflakeGenerator,
    TimestampOutOfRange,
)
from flakeforge.snowflake.constants import MAX_TIMESTAMP

EPOCH = 1565193600000


class TestConstruction:
    def test_accepts_every_valid_node_identity(self):
        for worker_id in range(32):
            for datacenter_id in range(32):
                generator = SnowflakeGenerator(worker_id, datacenter_id)
                assert generator.worker_id == worker_id
                assert generator.datacenter_id == datacenter_id

    @pytest.mark.parametrize(
        "worker_id,datacenter_id,field",
        [
            (-1, 0, "worker_id"),
            (32, 0, "worker_id"),
            (2**40, 0, "worker_id"),
            (0, -1, "datacenter_id"),
            (0, 32, "datacenter_id"),
            (-(2**40), 5, "worker_id"),
        ],
    )
    def test_rejects_out_of_range_node_identity(
        self,
        worker_id: int,
        datacenter_id: int,
        field: str,
    ):
        with pytest.raises(InvalidNodeIdentity) as exc_info:
            SnowflakeGenerator(worker_id, datacenter_id)

        assert exc_info.value.field == field
        assert exc_info.value.maximum == 31

    def test_invalid_node_identity_is_a_value_error(self):
        with pytest.raises(ValueError):
            SnowflakeGenerator(0, 99)

    @pytest.mark.parametrize("value", [True, 1.0, "1"])
    def test_rejects_non_integer_node_identity(self, value):
        with pytest.raises(InvalidNodeIdentity):
            SnowflakeGenerator(value, 0)

    def test_default_identity_warns(self):
        with pytest.warns(DefaultNodeIdentityWarning):
            generator = SnowflakeGenerator()

        assert generator.worker_id == 0
        assert generator.datacenter_id == 0
        assert generator.epoch == DEFAULT_EPOCH

    def test_explicit_identity_does_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            SnowflakeGenerator(1, 2)

    @pytest.mark.parametrize("epoch", [-1, 1.5, None])
    def test_rejects_invalid_epoch(self, epoch):
        with pytest.raises(ValueError):
            SnowflakeGenerator(1, 1, epoch=epoch)

    def test_initial_state(self):
        generator = SnowflakeGenerator(1, 1)
        assert generator.last_timestamp == -1
        assert generator.sequence == 0


class TestGeneration:
    def test_first_and_second_id_in_same_millisecond(
        self,
        manual_clock_factory,
    ):
        clock = manual_clock_factory(EPOCH + 1000)
        generator = SnowflakeGenerator(5, 3, epoch=EPOCH, clock=clock)

        first = generator.generate_sync()
        decoded = Snowflake.parse(first)

        assert decoded.sequence == 0
        assert decoded.timestamp == 1000
        assert decoded.datacenter_id == 3
        assert decoded.worker_id == 5

        second = generator.generate_sync()
        decoded_second = Snowflake.parse(second)

        assert decoded_second.sequence == 1
        assert decoded_second.timestamp == 1000
        assert second > first

    def test_encoding_matches_bit_layout(self, manual_clock_factory):
        clock = manual_clock_factory(EPOCH + 1000)
        generator = SnowflakeGenerator(5, 3, epoch=EPOCH, clock=clock)

        assert generator.generate_sync() == (1000 << 22) | (3 << 17) | (5 << 12)

    def test_sequence_resets_when_millisecond_advances(
        self,
        manual_clock_factory,
    ):
        clock = manual_clock_factory(EPOCH + 10)
        generator = SnowflakeGenerator(1, 1, epoch=EPOCH, clock=clock)

        for _ in range(5):
            generator.generate_sync()

        assert generator.sequence == 4

        clock.advance()
        snowflake_id = generator.generate_sync()

        assert Snowflake.parse(snowflake_id).sequence == 0
        assert generator.sequence == 0
        assert generator.last_timestamp == EPOCH + 11

    def test_sequential_ids_strictly_increase(self, manual_clock_factory):
        clock = manual_clock_factory(EPOCH + 1)
        generator = SnowflakeGenerator(7, 9, epoch=EPOCH, clock=clock)

        ids = []
        for idx in range(2000):
            if idx % 7 == 0:
                clock.advance(idx % 3)

            ids.append(generator.generate_sync())

        for idx in range(1, len(ids)):
            assert ids[idx] > ids[idx - 1], f"Id at {idx} not greater than previous"

    def test_system_clock_ids_strictly_increase(self):
        generator = SnowflakeGenerator(2, 4)

        ids = [generator.generate_sync() for _ in range(10_000)]

        assert len(set(ids)) == len(ids)
        assert ids == sorted(ids)

    def test_iteration_yields_ids(self, manual_clock_factory):
        clock = manual_clock_factory(EPOCH + 50)
        generator = SnowflakeGenerator(1, 1, epoch=EPOCH, clock=clock)

        iterator = iter(generator)
        ids = [next(iterator) for _ in range(3)]

        assert [Snowflake.parse(value).sequence for value in ids] == [0, 1, 2]

    def test_timestamp_of_returns_unix_ms(self, manual_clock_factory):
        clock = manual_clock_factory(EPOCH + 123_456)
        generator = SnowflakeGenerator(1, 1, epoch=EPOCH, clock=clock)

        snowflake_id = generator.generate_sync()

        assert generator.timestamp_of(snowflake_id) == EPOCH + 123_456
        assert generator.decode(snowflake_id) == Snowflake(123_456, 1, 1, 0)


class TestSequenceExhaustion:
    def test_next_id_after_4096_waits_for_next_millisecond(
        self,
        manual_clock_factory,
    ):
        now = EPOCH + 500
        clock = manual_clock_factory(now)
        generator = SnowflakeGenerator(1, 1, epoch=EPOCH, clock=clock)

        ids = [generator.generate_sync() for _ in range(4096)]
        sequences = [Snowflake.parse(value).sequence for value in ids]

        assert sequences == list(range(4096))
        assert all(Snowflake.parse(value).timestamp == 500 for value in ids)

        clock.schedule(now, now, now, now + 1)
        overflow_id = generator.generate_sync()
        decoded = Snowflake.parse(overflow_id)

        assert decoded.timestamp == 501
        assert decoded.sequence == 0
        assert overflow_id > ids[-1]
        assert generator.last_timestamp == now + 1
        assert generator.sequence == 0

    def test_spin_ignores_backward_reading(self, manual_clock_factory):
        now = EPOCH + 500
        clock = manual_clock_factory(now)
        generator = SnowflakeGenerator(1, 1, epoch=EPOCH, clock=clock)

        for _ in range(4096):
            generator.generate_sync()

        clock.schedule(now, now - 5, now, now + 2)
        decoded = Snowflake.parse(generator.generate_sync())

        assert decoded.timestamp == 502
        assert decoded.sequence == 0


class TestClockRegression:
    def test_regression_raises_and_leaves_state_unchanged(
        self,
        manual_clock_factory,
    ):
        now = EPOCH + 1000
        clock = manual_clock_factory(now)
        generator = SnowflakeGenerator(5, 3, epoch=EPOCH, clock=clock)

        first = generator.generate_sync()

        clock.set(now - 10)
        with pytest.raises(ClockRegression) as exc_info:
            generator.generate_sync()

        assert exc_info.value.magnitude_ms == 10
        assert exc_info.value.last_timestamp == now
        assert exc_info.value.current_timestamp == now - 10
        assert "10 milliseconds" in str(exc_info.value)

        assert generator.last_timestamp == now
        assert generator.sequence == 0

        clock.set(now)
        recovered = generator.generate_sync()

        assert Snowflake.parse(recovered).sequence == 1
        assert recovered > first

    def test_repeated_regressions_keep_failing_until_clock_recovers(
        self,
        manual_clock_factory,
    ):
        now = EPOCH + 1000
        clock = manual_clock_factory(now)
        generator = SnowflakeGenerator(1, 1, epoch=EPOCH, clock=clock)
        generator.generate_sync()

        for magnitude in (100, 50, 1):
            clock.set(now - magnitude)

            with pytest.raises(ClockRegression) as exc_info:
                generator.generate_sync()

            assert exc_info.value.magnitude_ms == magnitude

        clock.set(now + 1)
        assert Snowflake.parse(generator.generate_sync()).timestamp == 1001


class TestTimestampRange:
    def test_clock_before_epoch_raises_and_leaves_state_unchanged(
        self,
        manual_clock_factory,
    ):
        clock = manual_clock_factory(EPOCH - 5)
        generator = SnowflakeGenerator(5, 3, epoch=EPOCH, clock=clock)

        with pytest.raises(TimestampOutOfRange) as exc_info:
            generator.generate_sync()

        assert exc_info.value.offset == -5
        assert isinstance(exc_info.value, SnowflakeGenerationError)
        assert generator.last_timestamp == -1
        assert generator.sequence == 0

        clock.set(EPOCH)
        snowflake_id = generator.generate_sync()

        assert snowflake_id >= 0
        assert Snowflake.parse(snowflake_id) == Snowflake(0, 3, 5, 0)

    def test_largest_offset_still_encodes(self, manual_clock_factory):
        clock = manual_clock_factory(EPOCH + MAX_TIMESTAMP)
        generator = SnowflakeGenerator(31, 31, epoch=EPOCH, clock=clock)

        snowflake_id = generator.generate_sync()

        assert snowflake_id < 2**63
        assert Snowflake.parse(snowflake_id) == Snowflake(MAX_TIMESTAMP, 31, 31, 0)

    def test_offset_past_41_bits_raises_and_leaves_state_unchanged(
        self,
        manual_clock_factory,
    ):
        clock = manual_clock_factory(EPOCH + MAX_TIMESTAMP)
        generator = SnowflakeGenerator(1, 1, epoch=EPOCH, clock=clock)
        last_valid = generator.generate_sync()

        clock.set(EPOCH + MAX_TIMESTAMP + 1)
        with pytest.raises(TimestampOutOfRange) as exc_info:
            generator.generate_sync()

        assert exc_info.value.offset == MAX_TIMESTAMP + 1
        assert generator.last_timestamp == EPOCH + MAX_TIMESTAMP
        assert generator.sequence == 0

        clock.set(EPOCH + MAX_TIMESTAMP)
        assert generator.generate_sync() == last_valid + 1

    def test_exhaustion_spin_past_41_bits_raises(self, manual_clock_factory):
        now = EPOCH + MAX_TIMESTAMP
        clock = manual_clock_factory(now)
        generator = SnowflakeGenerator(1, 1, epoch=EPOCH, clock=clock)

        for _ in range(4096):
            generator.generate_sync()

        clock.schedule(now, now + 1)
        with pytest.raises(TimestampOutOfRange):
            generator.generate_sync()

        assert generator.last_timestamp == now
        assert generator.sequence == 4095


class TestConcurrency:
    def test_threads_in_same_millisecond_get_distinct_sequences(
        self,
        manual_clock_factory,
    ):
        clock = manual_clock_factory(EPOCH + 42)
        generator = SnowflakeGenerator(3, 4, epoch=EPOCH, clock=clock)

        callers = 64
        per_caller = 32
        barrier = threading.Barrier(callers)

        def produce():
            barrier.wait()
            return [generator.generate_sync() for _ in range(per_caller)]

        with ThreadPoolExecutor(max_workers=callers) as executor:
            results = list(executor.map(lambda _: produce(), range(callers)))

        ids = [snowflake_id for batch in results for snowflake_id in batch]
        total = callers * per_caller

        assert len(set(ids)) == total
        assert sorted(
            Snowflake.parse(snowflake_id).sequence for snowflake_id in ids
        ) == list(range(total))

        for batch in results:
            assert batch == sorted(batch)

    def test_threads_with_system_clock_never_collide(self):
        generator = SnowflakeGenerator(8, 16)

        with ThreadPoolExecutor(max_workers=16) as executor:
            results = list(
                executor.map(
                    lambda _: [generator.generate_sync() for _ in range(2000)],
                    range(16),
                )
            )

        ids = [snowflake_id for batch in results for snowflake_id in batch]
        assert len(set(ids)) == len(ids)

    @pytest.mark.asyncio
    async def test_concurrent_tasks_get_distinct_sequences(
        self,
        manual_clock_factory,
    ):
        clock = manual_clock_factory(EPOCH + 7)
        generator = SnowflakeGenerator(1, 2, epoch=EPOCH, clock=clock)

        ids = await asyncio.gather(*[generator.generate() for _ in range(100)])

        assert len(set(ids)) == 100
        assert sorted(Snowflake.parse(value).sequence for value in ids) == list(
            range(100)
        )


class TestAsyncGeneration:
    @pytest.mark.asyncio
    async def test_generate_matches_sync_encoding(self, manual_clock_factory):
        clock = manual_clock_factory(EPOCH + 1000)
        generator = SnowflakeGenerator(5, 3, epoch=EPOCH, clock=clock)

        first = await generator.generate()
        second = generator.generate_sync()

        assert first == (1000 << 22) | (3 << 17) | (5 << 12)
        assert second == first + 1

    @pytest.mark.asyncio
    async def test_regression_is_logged_and_reraised(
        self,
        manual_clock_factory,
        capsys,
    ):
        LoggingConfig().update(log_level="info", log_output="stderr")

        clock = manual_clock_factory(EPOCH + 1000)
        generator = SnowflakeGenerator(5, 3, epoch=EPOCH, clock=clock)
        await generator.generate()

        clock.set(EPOCH + 990)
        with pytest.raises(ClockRegression):
            await generator.generate()

        captured = capsys.readouterr()
        assert "ERROR" in captured.err
        assert "Refusing to generate id for 10 milliseconds" in captured.err

    @pytest.mark.asyncio
    async def test_trace_entries_emitted_when_enabled(
        self,
        manual_clock_factory,
        capsys,
    ):
        LoggingConfig().update(log_level="trace", log_output="stdout")

        clock = manual_clock_factory(EPOCH + 1000)
        generator = SnowflakeGenerator(5, 3, epoch=EPOCH, clock=clock)
        snowflake_id = await generator.generate()

        captured = capsys.readouterr()
        assert f"Generated id {snowflake_id}" in captured.out

    @pytest.mark.asyncio
    async def test_exhaustion_logged_at_debug(
        self,
        manual_clock_factory,
        capsys,
    ):
        now = EPOCH + 1000
        clock = manual_clock_factory(now)
        generator = SnowflakeGenerator(5, 3, epoch=EPOCH, clock=clock)

        for _ in range(4096):
            generator.generate_sync()

        LoggingConfig().update(log_level="debug", log_output="stderr")

        clock.schedule(now, now + 1)
        snowflake_id = await generator.generate()

        captured = capsys.readouterr()
        assert Snowflake.parse(snowflake_id).sequence == 0
        assert "Sequence exhausted" in captured.err

    @pytest.mark.asyncio
    async def test_disabled_logger_is_silent(
        self,
        manual_clock_factory,
        capsys,
    ):
        config = LoggingConfig()
        config.update(log_level="trace", log_output="stderr")
        config.disable("snowflake")

        clock = manual_clock_factory(EPOCH + 1000)
        generator = SnowflakeGenerator(5, 3, epoch=EPOCH, clock=clock)
        await generator.generate()

        clock.set(EPOCH)
        with pytest.raises(ClockRegression):
            await generator.generate()

        assert capsys.readouterr().err == ""
