"""
Process-wide Snowflake generator.

One generator per process, built from settings at application startup. Every
request handler shares it through `get_generator()`, so all IDs issued by this
process go through a single lock and a single (last_timestamp, sequence) state.
Running two generators with the same (worker_id, datacenter_id) pair at once
would issue duplicate IDs, which is why the instance is kept here instead of
being created per request.
"""

from typing import Optional

from microflake.core.config import settings
from microflake.services.logger import setup_logger
from microflake.utils.snowflake import SnowflakeIDGenerator

# Global generator instance
snowflake_generator: Optional[SnowflakeIDGenerator] = None

logger = setup_logger()


def init_generator() -> SnowflakeIDGenerator:
    """
    Create the global generator from the configured node identity.

    Returns:
        SnowflakeIDGenerator: The newly created generator.

    Raises:
        InvalidArgumentError: If WORKER_ID, DATACENTER_ID or EPOCH is out of range.
    """
    global snowflake_generator

    try:
        snowflake_generator = SnowflakeIDGenerator(
            worker_id=int(settings.WORKER_ID),
            datacenter_id=int(settings.DATACENTER_ID),
            epoch=int(settings.EPOCH),
        )
    except ValueError as e:
        logger.error("Invalid node configuration: %s", e)
        raise e

    return snowflake_generator


def get_generator() -> SnowflakeIDGenerator:
    """
    Retrieve the global generator for dependency injection.

    Example:
        >>> @app.post("/ids")
        >>> def create_id(generator: SnowflakeIDGenerator = Depends(get_generator)):
        ...     return generator.generate_id()

    Raises:
        RuntimeError: If called before `init_generator()`.
    """
    if snowflake_generator is None:
        logger.error("Generator not initialized. Call init_generator() first.")
        raise RuntimeError("Generator not initialized")

    return snowflake_generator
