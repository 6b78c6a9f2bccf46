"""Mutation record domain entity.

ONLY mutation lifecycle - ephemeral record of one mutation call with its
target keys, rollback snapshot and state machine.

Following maximum separation architecture - one file = one purpose.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple
from uuid import uuid4

from ..value_objects.query_key import QueryKey
from ..value_objects.query_status import MutationStatus


@dataclass
class MutationRecord:
    """Mutation record domain entity.

    Owned by MutationController for the duration of one mutation call.
    The snapshot is captured once, before any optimistic write, and is
    exposed read-only afterwards so rollback is a pure function of it.
    """

    target_keys: Tuple[QueryKey, ...]
    id: str = field(default_factory=lambda: str(uuid4()))
    name: str = "mutation"
    status: MutationStatus = MutationStatus.IDLE
    started_at: Optional[float] = None
    settled_at: Optional[float] = None
    error: Optional[BaseException] = None
    _snapshot: Dict[QueryKey, Any] = field(default_factory=dict, repr=False)

    @property
    def snapshot(self) -> Mapping[QueryKey, Any]:
        """Prior data of every target key, read-only."""
        return MappingProxyType(self._snapshot)

    def capture(self, key: QueryKey, previous_data: Any) -> None:
        """Record the pre-mutation value of key.

        Only the first capture of a key counts; the snapshot is immutable
        once taken.
        """
        if self.status != MutationStatus.PENDING:
            raise ValueError(f"Cannot capture snapshot in state {self.status.value}")
        self._snapshot.setdefault(key, previous_data)

    def discard_snapshot(self) -> None:
        """Drop the snapshot once the mutation is confirmed."""
        self._snapshot.clear()

    def transition(self, target: MutationStatus) -> None:
        """Move the state machine to target."""
        if not self.status.can_transition_to(target):
            raise ValueError(
                f"Invalid mutation transition {self.status.value} -> {target.value}"
            )
        self.status = target

    @property
    def is_settled(self) -> bool:
        """Check if mutation reached its terminal state."""
        return self.status == MutationStatus.SETTLED

    @property
    def is_pending(self) -> bool:
        """Check if mutation is waiting for the transport."""
        return self.status == MutationStatus.PENDING

    def touches(self, key: QueryKey) -> bool:
        """Check if mutation writes key optimistically."""
        return key in self.target_keys
