"""Query and mutation status value objects.

ONLY lifecycle states - enumerations for query entry and mutation record
state machines.

Following maximum separation architecture - one file = one purpose.
"""

from enum import Enum


class QueryStatus(Enum):
    """Lifecycle state of a query entry."""

    IDLE = "idle"         # Created, never fetched
    LOADING = "loading"   # Fetch in flight (previous data kept)
    SUCCESS = "success"   # Last fetch succeeded
    ERROR = "error"       # Last fetch failed

    def is_settled(self) -> bool:
        """Check if no fetch is running for this state."""
        return self in (QueryStatus.SUCCESS, QueryStatus.ERROR)


class MutationStatus(Enum):
    """Lifecycle state of a single mutation call.

    idle -> pending -> {success | error} -> settled (terminal)
    """

    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    SETTLED = "settled"

    def can_transition_to(self, target: "MutationStatus") -> bool:
        """Check if the state machine allows moving to target."""
        return target in _MUTATION_TRANSITIONS[self]


_MUTATION_TRANSITIONS = {
    MutationStatus.IDLE: {MutationStatus.PENDING},
    MutationStatus.PENDING: {MutationStatus.SUCCESS, MutationStatus.ERROR},
    MutationStatus.SUCCESS: {MutationStatus.SETTLED},
    MutationStatus.ERROR: {MutationStatus.SETTLED},
    MutationStatus.SETTLED: set(),
}
