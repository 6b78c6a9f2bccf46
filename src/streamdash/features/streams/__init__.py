"""Stream admin feature.

Query keys, query definitions, mutation descriptors and the service used
by the stream list and stream overview views.
"""

from .keys import stream_key, stream_messages_key, streams_key
from .models import *
from .mutations import (
    append_provisional_record,
    delete_stream_mutation,
    publish_message_mutation,
    remove_stream,
)
from .queries import stream_messages_query, stream_query, streams_query
from .services import StreamAdminService

__all__ = [
    # Keys
    "stream_key",
    "stream_messages_key",
    "streams_key",

    # Models
    "DeleteStreamRequest",
    "PublishMessageRequest",
    "DeleteStreamResponse",
    "PublishMessageResponse",
    "StreamDescription",
    "StreamMessagesResponse",
    "StreamRecord",
    "StreamsResponse",

    # Queries and mutations
    "stream_messages_query",
    "stream_query",
    "streams_query",
    "append_provisional_record",
    "delete_stream_mutation",
    "publish_message_mutation",
    "remove_stream",

    # Services
    "StreamAdminService",
]
