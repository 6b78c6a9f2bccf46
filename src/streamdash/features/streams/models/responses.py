"""Stream response models.

Read models validated from the raw JSON kept in the query cache.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class StreamResponse(BaseModel):
    """Base model for stream admin responses."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class StreamsResponse(StreamResponse):
    """Stream list."""

    streams: List[str] = Field(default_factory=list)
    count: int = 0

    @field_validator("streams", mode="before")
    @classmethod
    def null_is_empty(cls, v):
        return v or []


class StreamDescription(StreamResponse):
    """Stream summary shown on the overview page."""

    stream_name: str
    stream_arn: str
    status: str
    retention_hours: int
    shard_count: int
    encryption_type: Optional[str] = None


class StreamRecord(StreamResponse):
    """One message read from a shard.

    Provisional records are local placeholders for messages that are being
    published and have no shard or sequence number yet.
    """

    shard_id: Optional[str] = None
    partition_key: Optional[str] = None
    sequence_number: Optional[str] = None
    approximate_arrival_timestamp: Optional[datetime] = None
    data_base64: str = ""
    provisional: bool = False


class StreamMessagesResponse(StreamResponse):
    """Latest messages across the shards of a stream."""

    records: List[StreamRecord] = Field(default_factory=list)
    count: int = 0
    shards: int = 0

    @field_validator("records", mode="before")
    @classmethod
    def null_is_empty(cls, v):
        return v or []


class DeleteStreamResponse(StreamResponse):
    """Outcome of a stream deletion."""

    status: str
    stream: str


class PublishMessageResponse(StreamResponse):
    """Placement of a published message."""

    shard_id: Optional[str] = None
    sequence_number: Optional[str] = None
    partition_key: Optional[str] = None
