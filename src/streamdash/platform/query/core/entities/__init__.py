"""Query domain entities."""

from .mutation_record import MutationRecord
from .query_entry import QueryEntry

__all__ = [
    "MutationRecord",
    "QueryEntry",
]
