"""Query value objects."""

from .query_key import KeyLike, QueryKey
from .query_options import QueryOptions
from .query_status import MutationStatus, QueryStatus

__all__ = [
    "KeyLike",
    "QueryKey",
    "QueryOptions",
    "MutationStatus",
    "QueryStatus",
]
