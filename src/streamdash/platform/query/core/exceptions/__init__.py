"""Query domain exceptions.

One exception per file following maximum separation architecture.
"""

from .query_not_registered import QueryNotRegistered
from .stale_data_error import StaleDataError
from .transport_error import TransportError
from .validation_error import ValidationError

__all__ = [
    "QueryNotRegistered",
    "StaleDataError",
    "TransportError",
    "ValidationError",
]
