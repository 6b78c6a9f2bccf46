"""Core building blocks shared by every streamdash module."""

from .exceptions import StreamdashError, create_error_response

__all__ = [
    "StreamdashError",
    "create_error_response",
]
