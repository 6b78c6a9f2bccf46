"""Stream admin service implementation.

This service is the data layer behind the stream admin views. It combines
the stream query definitions and mutation descriptors with a QueryClient
and validates cached JSON into response models on read.
"""

import logging
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ....config.settings import StreamdashSettings, get_settings
from ....platform.query.application.commands.mutation_descriptor import BulkMutationResult
from ....platform.query.application.services.query_client import QueryClient
from ....platform.query.core.exceptions.transport_error import TransportError
from ....platform.query.core.protocols.observer import QueryObserver, Unsubscribe
from ..mutations import delete_stream_mutation, publish_message_mutation
from ..models.responses import (
    DeleteStreamResponse,
    PublishMessageResponse,
    StreamDescription,
    StreamMessagesResponse,
    StreamsResponse,
)
from ..queries import stream_messages_query, stream_query, streams_query

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class StreamAdminService:
    """Service for stream admin reads and writes.

    watch_* methods subscribe views to live query entries; the other reads
    return validated models, served from cache while fresh.
    """

    def __init__(self, client: QueryClient, settings: Optional[StreamdashSettings] = None):
        """Initialize with injected dependencies.

        Args:
            client: Query client owning the cache
            settings: Optional settings, environment settings by default
        """
        self._client = client
        self._settings = settings or get_settings()

    # Subscriptions

    def watch_streams(self, callback: QueryObserver) -> Unsubscribe:
        """Observe the stream list."""
        return self._client.subscribe(streams_query(self._settings), callback)

    def watch_stream(self, stream_name: str, callback: QueryObserver) -> Unsubscribe:
        """Observe one stream's description."""
        return self._client.subscribe(stream_query(stream_name, self._settings), callback)

    def watch_messages(self, stream_name: str, callback: QueryObserver) -> Unsubscribe:
        """Observe one stream's latest messages, polled while observed."""
        return self._client.subscribe(stream_messages_query(stream_name, self._settings), callback)

    # Reads

    async def list_streams(self) -> StreamsResponse:
        """Get every stream name."""
        data = await self._client.ensure_query_data(streams_query(self._settings))
        return _parse(StreamsResponse, data, "GET /list")

    async def describe_stream(self, stream_name: str) -> StreamDescription:
        """Get the description of a stream."""
        data = await self._client.ensure_query_data(stream_query(stream_name, self._settings))
        return _parse(StreamDescription, data, "GET /stream/describe")

    async def latest_messages(self, stream_name: str) -> StreamMessagesResponse:
        """Get the latest messages of a stream."""
        data = await self._client.ensure_query_data(
            stream_messages_query(stream_name, self._settings)
        )
        return _parse(StreamMessagesResponse, data, "GET /stream/messages")

    # Writes

    async def delete_stream(self, stream_name: str) -> DeleteStreamResponse:
        """Delete a stream.

        Raises:
            ValidationError: If the stream name is empty
            TransportError: If the server rejects the deletion
        """
        result = await self._client.mutate(delete_stream_mutation(stream_name))
        logger.info("Stream %s deleted", stream_name)
        return _parse(DeleteStreamResponse, result, "DELETE /stream")

    async def delete_all_streams(self) -> BulkMutationResult:
        """Delete every listed stream, continuing past individual failures.

        Returns:
            Aggregate outcome, one result or error per listed stream
        """
        listing = await self.list_streams()
        if not listing.streams:
            return BulkMutationResult(total=0)

        result = await self._client.mutate_all(
            [delete_stream_mutation(name) for name in listing.streams]
        )
        if result.all_succeeded:
            logger.info(result.summary("streams", "deleted"))
        else:
            logger.warning(result.summary("streams", "deleted"))
        return result

    async def publish_message(
        self,
        stream_name: str,
        data: str,
        partition_key: Optional[str] = None,
        stream_arn: Optional[str] = None
    ) -> PublishMessageResponse:
        """Publish one message to a stream.

        Args:
            stream_name: Stream whose message list is updated
            data: Message payload
            partition_key: Optional partition key, generated by the server if omitted
            stream_arn: Stream ARN, looked up from the description if omitted

        Raises:
            ValidationError: If data or the stream ARN is missing
            TransportError: If the server rejects the message
        """
        if stream_arn is None:
            stream_arn = (await self.describe_stream(stream_name)).stream_arn

        result = await self._client.mutate(
            publish_message_mutation(stream_name, stream_arn, data, partition_key)
        )
        return _parse(PublishMessageResponse, result, "POST /stream/message")


def _parse(model: Type[ModelT], data: Any, operation: str) -> ModelT:
    """Validate raw response JSON into model."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise TransportError(
            f"{operation} returned an unexpected payload",
            error_code="INVALID_RESPONSE",
            details={"errors": e.errors(include_url=False)},
        ) from e
