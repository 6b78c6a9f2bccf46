"""Stream request/response models."""

from .requests import (
    DeleteStreamRequest,
    PublishMessageRequest,
    StreamRequest,
)
from .responses import (
    DeleteStreamResponse,
    PublishMessageResponse,
    StreamDescription,
    StreamMessagesResponse,
    StreamRecord,
    StreamResponse,
    StreamsResponse,
)

__all__ = [
    # Request models
    "DeleteStreamRequest",
    "PublishMessageRequest",
    "StreamRequest",

    # Response models
    "DeleteStreamResponse",
    "PublishMessageResponse",
    "StreamDescription",
    "StreamMessagesResponse",
    "StreamRecord",
    "StreamResponse",
    "StreamsResponse",
]
