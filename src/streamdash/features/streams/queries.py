"""Stream query definitions.

ONLY read definitions - binds the stream admin keys to their API reads and
freshness windows.

Following maximum separation architecture - one file = one purpose.
"""

from typing import Optional
from urllib.parse import urlencode

from ...config.settings import StreamdashSettings, get_settings
from ...platform.query.application.commands.query_definition import QueryDefinition
from ...platform.query.core.value_objects.query_options import QueryOptions
from .keys import stream_key, stream_messages_key, streams_key


def streams_query(settings: Optional[StreamdashSettings] = None) -> QueryDefinition:
    """List of every stream name."""
    settings = settings or get_settings()
    options = QueryOptions.from_settings(settings).merge(
        stale_time_ms=settings.streams_stale_time_ms,
    )
    return QueryDefinition.request(streams_key(), "/list", options=options)


def stream_query(stream_name: str, settings: Optional[StreamdashSettings] = None) -> QueryDefinition:
    """Description of one stream."""
    settings = settings or get_settings()
    options = QueryOptions.from_settings(settings).merge(
        stale_time_ms=settings.stream_stale_time_ms,
    )
    path = f"/stream/describe?{urlencode({'streamName': stream_name})}"
    return QueryDefinition.request(stream_key(stream_name), path, options=options)


def stream_messages_query(
    stream_name: str,
    settings: Optional[StreamdashSettings] = None
) -> QueryDefinition:
    """Latest messages of one stream, polled while observed."""
    settings = settings or get_settings()
    options = QueryOptions.from_settings(settings).merge(
        stale_time_ms=settings.messages_stale_time_ms,
        refetch_interval_ms=settings.messages_refetch_interval_ms,
    )
    query = urlencode({"streamName": stream_name, "limit": settings.messages_limit})
    return QueryDefinition.request(
        stream_messages_key(stream_name), f"/stream/messages?{query}", options=options
    )
