"""Query infrastructure configuration."""

from .query_config import QueryClientConfig

__all__ = [
    "QueryClientConfig",
]
