"""Query platform.

Client-side synchronization of remote server state: a keyed cache of query
entries with freshness tracking, deduplicated fetching, observer-gated
polling, optimistic mutations with rollback and prefix invalidation.
"""

from .core import *
from .application import *
from .infrastructure import *

__all__ = [
    # Core
    "MutationRecord",
    "QueryEntry",
    "KeyLike",
    "QueryKey",
    "QueryOptions",
    "MutationStatus",
    "QueryStatus",
    "QueryNotRegistered",
    "StaleDataError",
    "TransportError",
    "ValidationError",
    "ObserverCountListener",
    "QueryObserver",
    "Unsubscribe",
    "Transport",

    # Application
    "BulkMutationResult",
    "MutationDescriptor",
    "PreparedMutation",
    "QueryDefinition",
    "InvalidationBus",
    "InvalidationStats",
    "MutationController",
    "QueryCache",
    "QueryClient",
    "QueryExecutor",
    "RefetchScheduler",

    # Infrastructure
    "QueryClientConfig",
    "AiohttpTransport",
]
