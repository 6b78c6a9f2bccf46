"""Query application services."""

from .invalidation_bus import InvalidationBus, InvalidationListener, InvalidationStats
from .mutation_controller import MutationController
from .query_cache import QueryCache
from .query_client import QueryClient
from .query_executor import MAX_RETRY_DELAY_MS, QueryExecutor
from .refetch_scheduler import RefetchScheduler

__all__ = [
    "InvalidationBus",
    "InvalidationListener",
    "InvalidationStats",
    "MutationController",
    "QueryCache",
    "QueryClient",
    "MAX_RETRY_DELAY_MS",
    "QueryExecutor",
    "RefetchScheduler",
]
