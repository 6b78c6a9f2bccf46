"""Core exceptions for streamdash."""

from .base import StreamdashError, create_error_response

__all__ = [
    "StreamdashError",
    "create_error_response",
]
