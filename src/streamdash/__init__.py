"""streamdash - client-side data synchronization for a message-stream admin dashboard.

This library keeps a local cache of remote server state consistent with the
admin API: deduplicated fetching, freshness tracking, observer-gated
polling, optimistic mutations with rollback and prefix invalidation.
"""

# Initialize logging configuration on import
from .config.logging_config import setup_logging
setup_logging()

from .__version__ import __version__

from .config import (
    LoggingConfig,
    StreamdashSettings,
    get_settings,
)

from .core.exceptions import (
    StreamdashError,
    create_error_response,
)

from .platform.query import (
    # Core
    QueryEntry,
    QueryKey,
    QueryOptions,
    QueryStatus,
    MutationRecord,
    MutationStatus,
    Transport,

    # Exceptions
    QueryNotRegistered,
    StaleDataError,
    TransportError,
    ValidationError,

    # Application
    BulkMutationResult,
    MutationDescriptor,
    QueryDefinition,
    QueryCache,
    QueryClient,
    QueryExecutor,
    RefetchScheduler,
    InvalidationBus,
    MutationController,

    # Infrastructure
    AiohttpTransport,
    QueryClientConfig,
)

from .features.streams import StreamAdminService

__all__ = [
    "__version__",

    # Configuration
    "LoggingConfig",
    "StreamdashSettings",
    "get_settings",

    # Exceptions
    "StreamdashError",
    "create_error_response",
    "QueryNotRegistered",
    "StaleDataError",
    "TransportError",
    "ValidationError",

    # Query platform
    "QueryEntry",
    "QueryKey",
    "QueryOptions",
    "QueryStatus",
    "MutationRecord",
    "MutationStatus",
    "Transport",
    "BulkMutationResult",
    "MutationDescriptor",
    "QueryDefinition",
    "QueryCache",
    "QueryClient",
    "QueryExecutor",
    "RefetchScheduler",
    "InvalidationBus",
    "MutationController",
    "AiohttpTransport",
    "QueryClientConfig",

    # Features
    "StreamAdminService",
]
