"""Stream query keys.

ONLY key construction - query keys of the stream admin views.

Following maximum separation architecture - one file = one purpose.
"""

from ...platform.query.core.value_objects.query_key import QueryKey

STREAMS = "streams"
STREAM = "stream"
STREAM_MESSAGES = "stream-messages"


def streams_key() -> QueryKey:
    """Key of the stream list."""
    return QueryKey.of(STREAMS)


def stream_key(stream_name: str) -> QueryKey:
    """Key of one stream's description."""
    return QueryKey.of(STREAM, stream_name)


def stream_messages_key(stream_name: str) -> QueryKey:
    """Key of one stream's latest messages."""
    return QueryKey.of(STREAM_MESSAGES, stream_name)
