"""
Snowflake ID Generator Module

A Python implementation of Twitter's Snowflake algorithm for generating unique,
time-ordered 64-bit identifiers without coordination between nodes, plus the
inverse operation that decomposes an identifier back into its fields.

Algorithm Overview:
    The Snowflake algorithm generates 64-bit IDs with the following structure:

    |1 bit|         41 bits         |   5 bits   |  5 bits  |  12 bits  |
    |sign |   timestamp offset      | datacenter |  worker  | sequence  |
    | 0   | milliseconds since epoch|    0-31    |   0-31   |  0-4095   |

    - Sign bit: Always 0 (positive number)
    - Timestamp: 41 bits = ~69 years of milliseconds from EPOCH
    - Datacenter ID: 5 bits = 32 datacenters
    - Worker ID: 5 bits = 32 workers per datacenter
    - Sequence: 12 bits = 4096 IDs per millisecond per node

Thread Safety:
    - Uses threading.Lock() for atomic ID generation
    - The timestamp/sequence read-modify-write and the composition of the ID
      happen inside one critical section
    - Decoding touches no shared state and takes no lock

Clock Considerations:
    - A clock reading earlier than the last generated ID raises
      ClockMovedBackwardsError; the generator never retries on its own
    - When the sequence is exhausted within one millisecond the generator
      spins on the clock until the next millisecond. A frozen clock blocks
      the caller forever.
    - An offset that no longer fits in 41 bits raises TimestampOverflowError
      instead of wrapping

Based on: Twitter's Snowflake algorithm
"""

from datetime import datetime, timedelta, timezone
import threading
import time
from typing import Callable, Optional

from microflake.core.exceptions import (
    ClockMovedBackwardsError,
    InvalidArgumentError,
    TimestampOverflowError,
)
from microflake.core.schema import DecodedId
from microflake.services.logger import setup_logger

logger = setup_logger()

# 2017-01-01 00:00 UTC+8, in milliseconds since the Unix epoch
EPOCH = 1483200000000

SEQUENCE_BITS = 12
WORKER_ID_BITS = 5
DATACENTER_ID_BITS = 5
TIMESTAMP_BITS = 41

MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1
MAX_WORKER_ID = (1 << WORKER_ID_BITS) - 1
MAX_DATACENTER_ID = (1 << DATACENTER_ID_BITS) - 1
MAX_TIMESTAMP_OFFSET = (1 << TIMESTAMP_BITS) - 1

WORKER_ID_SHIFT = SEQUENCE_BITS
DATACENTER_ID_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS
TIMESTAMP_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS + DATACENTER_ID_BITS

UINT64_MASK = (1 << 64) - 1

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Latest epoch whose whole 41-bit range still fits in a datetime
MAX_EPOCH = (
    datetime.max.replace(tzinfo=timezone.utc) - _UNIX_EPOCH
) // timedelta(milliseconds=1) - MAX_TIMESTAMP_OFFSET


def _system_clock() -> int:
    """Returns the current timestamp in milliseconds."""
    return int(time.time() * 1000)


def _check_node_id(name: str, value: int, maximum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    if not 0 <= value <= maximum:
        raise InvalidArgumentError(f"{name} must be between 0 and {maximum}")


def _check_epoch(epoch: int) -> None:
    if isinstance(epoch, bool) or not isinstance(epoch, int):
        raise InvalidArgumentError(f"Epoch must be an integer, got {epoch!r}")
    if not 0 <= epoch <= MAX_EPOCH:
        raise InvalidArgumentError(f"Epoch must be between 0 and {MAX_EPOCH}")


def sequence_from(snowflake_id: int) -> int:
    return snowflake_id & MAX_SEQUENCE


def worker_id_from(snowflake_id: int) -> int:
    return (snowflake_id >> WORKER_ID_SHIFT) & MAX_WORKER_ID


def datacenter_id_from(snowflake_id: int) -> int:
    return (snowflake_id >> DATACENTER_ID_SHIFT) & MAX_DATACENTER_ID


def timestamp_from(snowflake_id: int, epoch: int = EPOCH) -> int:
    """Returns the absolute generation time of an ID in milliseconds."""
    return ((snowflake_id >> TIMESTAMP_SHIFT) & MAX_TIMESTAMP_OFFSET) + epoch


def decode_id(snowflake_id: int, epoch: int = EPOCH) -> DecodedId:
    """Decomposes a 64-bit ID into its fields.

    Decoding is pure bit extraction: any integer decodes to some value, and the
    result is not checked against any particular generator. The input is first
    truncated to 64 bits, so negative numbers decode as their unsigned
    two's-complement word.

    Args:
        snowflake_id: The ID to decode.
        epoch: The epoch the ID was generated against, in milliseconds.

    Returns:
        The decoded fields of the ID.

    Raises:
        InvalidArgumentError: If the epoch is outside 0-MAX_EPOCH.
    """
    _check_epoch(epoch)
    snowflake_id &= UINT64_MASK
    offset = (snowflake_id >> TIMESTAMP_SHIFT) & MAX_TIMESTAMP_OFFSET
    timestamp = epoch + offset

    return DecodedId(
        timestamp_offset=offset,
        worker_id=worker_id_from(snowflake_id),
        datacenter_id=datacenter_id_from(snowflake_id),
        sequence=sequence_from(snowflake_id),
        timestamp=timestamp,
        generation_time=_UNIX_EPOCH + timedelta(milliseconds=timestamp),
    )


class SnowflakeIDGenerator:
    """A thread-safe Snowflake ID generator for creating unique identifiers.

    Attributes:
        worker_id: The worker ID of this generator instance (0-31).
        datacenter_id: The datacenter ID of this generator instance (0-31).
        epoch: The custom epoch timestamp in milliseconds.
        last_timestamp: Timestamp of the last generated ID, -1 before the
            first one.
        sequence: Sequence number of the last generated ID.
    """

    def __init__(
        self,
        worker_id: int,
        datacenter_id: int,
        epoch: int = EPOCH,
        clock: Optional[Callable[[], int]] = None,
    ):
        """Initializes a new Snowflake ID generator instance.

        Args:
            worker_id: A unique worker identifier (0-31).
            datacenter_id: A unique datacenter identifier (0-31).
            epoch: The custom epoch timestamp in milliseconds.
            clock: Callable returning the current time in milliseconds since
                the Unix epoch. Defaults to the system clock.

        Raises:
            InvalidArgumentError: If an identifier is outside 0-31 or the
                epoch is negative or so late that decoded IDs would not fit
                in a datetime.
        """
        _check_node_id("Worker ID", worker_id, MAX_WORKER_ID)
        _check_node_id("Datacenter ID", datacenter_id, MAX_DATACENTER_ID)
        _check_epoch(epoch)

        self._worker_id = worker_id
        self._datacenter_id = datacenter_id
        self._epoch = epoch
        self._clock = clock or _system_clock
        self.sequence = 0
        self.last_timestamp = -1
        self.lock = threading.Lock()

        logger.info(
            "Snowflake generator ready: worker_id=%s datacenter_id=%s epoch=%s",
            worker_id,
            datacenter_id,
            epoch,
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

    def _current_timestamp(self) -> int:
        return self._clock()

    def _wait_for_next_millis(self, last_timestamp: int) -> int:
        """Waits until the next millisecond if the sequence is exhausted.

        Args:
            last_timestamp: The timestamp of the last generated ID.

        Returns:
            The next millisecond timestamp.
        """
        timestamp = self._current_timestamp()
        while timestamp <= last_timestamp:
            timestamp = self._current_timestamp()
        return timestamp

    def _next_id(self) -> int:
        # Caller holds self.lock
        timestamp = self._current_timestamp()

        if timestamp < self.last_timestamp:
            logger.warning(
                "Clock moved backwards: last=%s current=%s",
                self.last_timestamp,
                timestamp,
            )
            raise ClockMovedBackwardsError(self.last_timestamp, timestamp)

        if timestamp == self.last_timestamp:
            sequence = (self.sequence + 1) & MAX_SEQUENCE
            if sequence == 0:
                logger.debug("Sequence exhausted at %s, waiting", timestamp)
                timestamp = self._wait_for_next_millis(self.last_timestamp)
        else:
            sequence = 0

        offset = timestamp - self._epoch
        if not 0 <= offset <= MAX_TIMESTAMP_OFFSET:
            raise TimestampOverflowError(
                f"Timestamp {timestamp} is outside the {TIMESTAMP_BITS}-bit"
                f" range of epoch {self._epoch}"
            )

        self.sequence = sequence
        self.last_timestamp = timestamp

        return (
            (offset << TIMESTAMP_SHIFT)
            | (self._datacenter_id << DATACENTER_ID_SHIFT)
            | (self._worker_id << WORKER_ID_SHIFT)
            | sequence
        )

    def generate_id(self) -> int:
        """Generates a new unique Snowflake ID.

        Returns:
            A 64-bit unique Snowflake ID.

        Raises:
            ClockMovedBackwardsError: If the system clock moves backward.
            TimestampOverflowError: If the clock is before the epoch or more
                than 2^41 ms past it.
        """
        with self.lock:
            return self._next_id()

    def generate_ids(self, count: int) -> list[int]:
        """Generates `count` IDs back to back.

        The lock is taken once for the whole batch, so the IDs are
        consecutive for this generator.

        Raises:
            InvalidArgumentError: If count is less than 1.
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise InvalidArgumentError("Count must be a positive integer")

        with self.lock:
            return [self._next_id() for _ in range(count)]

    def decode(self, snowflake_id: int) -> DecodedId:
        """Decodes an ID against this generator's epoch. See `decode_id`."""
        return decode_id(snowflake_id, self._epoch)
