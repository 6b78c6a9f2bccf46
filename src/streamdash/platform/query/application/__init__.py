"""Query application layer.

Commands describe reads and writes; services orchestrate them against the
cache.
"""

from .commands import *
from .services import *

__all__ = [
    # Commands
    "BulkMutationResult",
    "CanonicalUpdate",
    "MutationDescriptor",
    "MutationFunction",
    "OptimisticUpdate",
    "PreparedMutation",
    "FetchFunction",
    "QueryDefinition",

    # Services
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
