"""Stream request models.

Payload models of the stream admin mutations. Field names follow Python
conventions; the wire format uses camelCase aliases.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class StreamRequest(BaseModel):
    """Base model for stream admin request payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class DeleteStreamRequest(StreamRequest):
    """Request model for deleting a stream."""

    stream_name: str = Field(..., min_length=1, description="Name of the stream to delete")


class PublishMessageRequest(StreamRequest):
    """Request model for publishing one message to a stream.

    The server generates a partition key when none is given.
    """

    stream_arn: str = Field(..., min_length=1, description="ARN of the target stream")
    data: str = Field(..., min_length=1, description="Message payload")
    partition_key: Optional[str] = Field(None, description="Partition key")

    @field_validator("partition_key")
    @classmethod
    def blank_partition_key_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty partition key as not given."""
        return v or None
