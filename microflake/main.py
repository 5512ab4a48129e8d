"""
FastAPI Snowflake ID Service

A small HTTP front end over the Snowflake ID generator, for collaborators that
cannot embed the library directly. Every process runs one generator with the
(worker_id, datacenter_id) pair it was configured with; assigning distinct
pairs to concurrently running processes is the deployer's job.

Key Features:
    - Single and batch ID generation
    - Decoding of any 64-bit ID into timestamp, node identifiers and sequence
    - Node identity endpoint for health checks and debugging
    - Clock regression surfaced as 503 instead of being silently retried

Architecture:
    - FastAPI for the web framework and automatic API documentation
    - Snowflake ID generator shared through dependency injection
    - pydantic-settings for node configuration
    - Structured logging for monitoring and debugging

IDs are rendered as decimal strings in every JSON payload so 64-bit values
survive clients that parse numbers as doubles.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Path, status
from fastapi.middleware.cors import CORSMiddleware

from microflake.core.config import settings
from microflake.core.exceptions import (
    ClockMovedBackwardsError,
    InvalidArgumentError,
    TimestampOverflowError,
)
from microflake.core.schema import (
    CreateIdBatch,
    DecodedIdResponse,
    GeneratedId,
    GeneratedIdBatch,
    NodeInfo,
)
from microflake.services.generator import get_generator, init_generator
from microflake.services.logger import setup_logger
from microflake.utils.snowflake import SnowflakeIDGenerator

logger = setup_logger()

MAX_SIGNED_64 = (1 << 63) - 1


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan event handler that builds the process-wide generator.

    Raises:
        InvalidArgumentError: If the configured node identity is out of range.
            The application refuses to start rather than issue colliding IDs.
    """
    logger.info("Starting application and initializing generator...")

    try:
        init_generator()
    except InvalidArgumentError as e:
        logger.error("Generator initialization failed: %s", e)
        raise e

    yield

    logger.info("Application is shutting down.")


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _generation_failed(e: Exception) -> HTTPException:
    if isinstance(e, ClockMovedBackwardsError):
        logger.error("Clock moved backwards: %s", e)
        detail = "System clock moved backwards, refusing to generate IDs"
    else:
        logger.error("Timestamp out of range: %s", e)
        detail = "System clock is outside the ID timestamp range"

    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=detail,
    )


@app.post(
    "/ids",
    status_code=status.HTTP_201_CREATED,
    response_model=GeneratedId,
    summary="Generate an ID",
    description="""
    Generate one unique, roughly time-ordered 64-bit Snowflake ID.

    The ID is returned as a decimal string. IDs issued later by the same node
    compare greater than earlier ones.
    """,
    responses={
        201: {
            "description": "ID generated successfully",
            "content": {
                "application/json": {"example": {"id": "517815424262414336"}}
            },
        },
        503: {
            "description": "The system clock moved backwards or out of range",
            "content": {
                "application/json": {
                    "example": {
                        "detail": "System clock moved backwards, refusing to generate IDs"
                    }
                }
            },
        },
    },
)
def create_id(generator: SnowflakeIDGenerator = Depends(get_generator)):
    """Generate a single ID.

    Args:
        generator (SnowflakeIDGenerator): The process-wide generator.

    Returns:
        GeneratedId: The generated ID.
    """
    try:
        return GeneratedId(id=str(generator.generate_id()))
    except (ClockMovedBackwardsError, TimestampOverflowError) as e:
        raise _generation_failed(e)


@app.post(
    "/ids/batch",
    status_code=status.HTTP_201_CREATED,
    response_model=GeneratedIdBatch,
    summary="Generate IDs in batch",
    description="""
    Generate `count` IDs in a single request, in generation order.

    The count is bounded by the MAX_BATCH_SIZE setting.
    """,
    responses={
        201: {
            "description": "Batch of IDs generated successfully",
            "content": {
                "application/json": {
                    "example": {
                        "ids": ["517815424262414336", "517815424262414337"]
                    }
                }
            },
        },
        503: {
            "description": "The system clock moved backwards or out of range",
        },
    },
)
def create_ids(
    batch: CreateIdBatch,
    generator: SnowflakeIDGenerator = Depends(get_generator),
):
    """Generate several IDs at once.

    Args:
        batch (CreateIdBatch): The request body holding the batch size.
        generator (SnowflakeIDGenerator): The process-wide generator.

    Returns:
        GeneratedIdBatch: The generated IDs.
    """
    try:
        ids = generator.generate_ids(batch.count)
    except (ClockMovedBackwardsError, TimestampOverflowError) as e:
        raise _generation_failed(e)

    return GeneratedIdBatch(ids=[str(snowflake_id) for snowflake_id in ids])


@app.get(
    "/ids/{snowflake_id}",
    response_model=DecodedIdResponse,
    summary="Decode an ID",
    description="""
    Decompose a Snowflake ID into its timestamp, datacenter ID, worker ID and
    sequence number.

    Decoding is pure bit extraction against this node's epoch: the ID does not
    have to come from this node.
    """,
    responses={
        200: {
            "description": "Decoded ID",
            "content": {
                "application/json": {
                    "example": {
                        "id": "1",
                        "timestamp_offset": 0,
                        "worker_id": 0,
                        "datacenter_id": 0,
                        "sequence": 1,
                        "timestamp": 1483200000000,
                        "generation_time": "2016-12-31T16:00:00Z",
                    }
                }
            },
        },
    },
)
def decode_id(
    snowflake_id: int = Path(
        ...,
        ge=0,
        le=MAX_SIGNED_64,
        description="The Snowflake ID to decode",
        examples=["517815424262414336"],
    ),
    generator: SnowflakeIDGenerator = Depends(get_generator),
):
    """Decode an ID.

    Args:
        snowflake_id (int): The ID to decode.
        generator (SnowflakeIDGenerator): The process-wide generator.

    Returns:
        DecodedIdResponse: The decoded fields.
    """
    decoded = generator.decode(snowflake_id)
    return DecodedIdResponse(id=str(snowflake_id), **decoded.model_dump())


@app.get("/health", response_model=NodeInfo, summary="Node identity")
def health(generator: SnowflakeIDGenerator = Depends(get_generator)):
    return NodeInfo(
        env=settings.ENV,
        worker_id=generator.worker_id,
        datacenter_id=generator.datacenter_id,
        epoch=generator.epoch,
    )
