"""Query infrastructure layer.

Concrete transports and configuration loading.
"""

from .configuration import QueryClientConfig
from .transports import AiohttpTransport

__all__ = [
    "QueryClientConfig",
    "AiohttpTransport",
]
