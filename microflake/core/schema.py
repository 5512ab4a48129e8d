from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from microflake.core.config import settings


class DecodedId(BaseModel):
    """The components of a Snowflake ID, as recovered by decoding it.

    Args:
        timestamp_offset (int): Milliseconds elapsed since the generator epoch.
        worker_id (int): Worker identifier (0-31).
        datacenter_id (int): Datacenter identifier (0-31).
        sequence (int): Per-millisecond sequence number (0-4095).
        timestamp (int): Absolute generation time in milliseconds since the
            Unix epoch.
        generation_time (datetime): Absolute generation time in UTC.
    """

    model_config = ConfigDict(frozen=True)

    timestamp_offset: int = Field(
        ...,
        description="Milliseconds elapsed since the generator epoch",
        examples=[123456789],
    )
    worker_id: int = Field(..., description="Worker identifier", examples=[13])
    datacenter_id: int = Field(
        ..., description="Datacenter identifier", examples=[17]
    )
    sequence: int = Field(
        ..., description="Sequence number within the millisecond", examples=[0]
    )
    timestamp: int = Field(
        ...,
        description="Generation time in milliseconds since the Unix epoch",
        examples=[1483323456789],
    )
    generation_time: datetime = Field(
        ...,
        description="Generation time as an ISO 8601 UTC datetime",
        examples=["2017-01-02T02:17:36.789000Z"],
    )


class DecodedIdResponse(DecodedId):
    """Response model for a decoded Snowflake ID.

    Args:
        id (str): The decoded ID as a decimal string.
    """

    id: str = Field(
        ...,
        description="The decoded Snowflake ID",
        examples=["517815424262414336"],
    )


class GeneratedId(BaseModel):
    """Response model for a single generated ID.

    IDs are rendered as strings so that 64-bit values survive JSON clients
    that parse numbers as doubles.
    """

    id: str = Field(
        ...,
        description="The generated Snowflake ID",
        examples=["517815424262414336"],
    )


class GeneratedIdBatch(BaseModel):
    """Response model for a batch of generated IDs."""

    ids: list[str] = Field(
        ...,
        description="The generated Snowflake IDs, in generation order",
        examples=[["517815424262414336", "517815424262414337"]],
    )


class CreateIdBatch(BaseModel):
    """Request model for generating a batch of IDs.

    Args:
        count (int): How many IDs to generate.
    """

    count: int = Field(
        ...,
        ge=1,
        description="Number of IDs to generate",
        examples=[10],
    )

    @model_validator(mode="after")
    def validate_count(self):
        """Reject batches larger than the configured maximum."""

        if self.count > settings.MAX_BATCH_SIZE:
            raise ValueError(
                f"Batch size must not exceed {settings.MAX_BATCH_SIZE}."
            )

        return self


class NodeInfo(BaseModel):
    """Response model describing the node identity of this generator."""

    env: str
    worker_id: int
    datacenter_id: int
    epoch: int
