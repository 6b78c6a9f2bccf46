"""Query application commands."""

from .mutation_descriptor import (
    BulkMutationResult,
    CanonicalUpdate,
    MutationDescriptor,
    MutationFunction,
    OptimisticUpdate,
    PreparedMutation,
)
from .query_definition import FetchFunction, QueryDefinition

__all__ = [
    "BulkMutationResult",
    "CanonicalUpdate",
    "MutationDescriptor",
    "MutationFunction",
    "OptimisticUpdate",
    "PreparedMutation",
    "FetchFunction",
    "QueryDefinition",
]
