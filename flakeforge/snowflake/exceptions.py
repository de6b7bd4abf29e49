class SnowflakeGenerationError(Exception):
    pass


class InvalidNodeIdentity(SnowflakeGenerationError, ValueError):
    def __init__(
        self,
        field: str,
        value: object,
        maximum: int,
    ) -> None:
        self.field = field
        self.value = value
        self.maximum = maximum

        super().__init__(
            f"{field} can't be greater than {maximum} or less than 0, got {value!r}"
        )


class ClockRegression(SnowflakeGenerationError):
    def __init__(
        self,
        last_timestamp: int,
        current_timestamp: int,
    ) -> None:
        self.last_timestamp = last_timestamp
        self.current_timestamp = current_timestamp
        self.magnitude_ms = last_timestamp - current_timestamp

        super().__init__(
            "Clock moved backwards. "
            f"Refusing to generate id for {self.magnitude_ms} milliseconds"
        )


class DefaultNodeIdentityWarning(UserWarning):
    pass


class TimestampOutOfRange(SnowflakeGenerationError):
    def __init__(
        self,
        current_timestamp: int,
        epoch: int,
        maximum: int,
    ) -> None:
        self.current_timestamp = current_timestamp
        self.epoch = epoch
        self.offset = current_timestamp - epoch
        self.maximum = maximum

        super().__init__(
            f"Timestamp offset {self.offset} from epoch {epoch} is outside "
            f"0 to {maximum}. Refusing to generate id"
        )
