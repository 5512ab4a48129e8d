class SnowflakeError(Exception):
    """Base class for all ID generation errors."""

    pass


class InvalidArgumentError(SnowflakeError, ValueError):
    """Raised when a node identifier or argument is out of range."""

    pass


class ClockMovedBackwardsError(SnowflakeError):
    """Raised when the system clock reads earlier than the last generated ID."""

    def __init__(self, last_timestamp: int, current_timestamp: int):
        self.last_timestamp = last_timestamp
        self.current_timestamp = current_timestamp
        super().__init__(
            f"Clock moved backwards by {last_timestamp - current_timestamp} ms."
            " Refusing to generate ID."
        )


class TimestampOverflowError(SnowflakeError):
    """Raised when the timestamp offset does not fit in the 41-bit field."""

    pass
