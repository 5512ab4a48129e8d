from microflake.core.exceptions import (
    ClockMovedBackwardsError,
    InvalidArgumentError,
    SnowflakeError,
    TimestampOverflowError,
)
from microflake.core.schema import DecodedId
from microflake.utils.snowflake import EPOCH, SnowflakeIDGenerator, decode_id

__all__ = [
    "EPOCH",
    "ClockMovedBackwardsError",
    "DecodedId",
    "InvalidArgumentError",
    "SnowflakeError",
    "SnowflakeIDGenerator",
    "TimestampOverflowError",
    "decode_id",
]
