"""Query transport implementations."""

from .aiohttp_transport import AiohttpTransport

__all__ = [
    "AiohttpTransport",
]
