"""Query core domain layer.

Clean core containing only entities, value objects, exceptions and shared
contracts. No orchestration logic or external dependencies.
"""

from .entities import *
from .value_objects import *
from .exceptions import *
from .protocols import *

__all__ = [
    # Entities
    "MutationRecord",
    "QueryEntry",

    # Value Objects
    "KeyLike",
    "QueryKey",
    "QueryOptions",
    "MutationStatus",
    "QueryStatus",

    # Exceptions
    "QueryNotRegistered",
    "StaleDataError",
    "TransportError",
    "ValidationError",

    # Protocols
    "ObserverCountListener",
    "QueryObserver",
    "Unsubscribe",
    "Transport",
]
