"""Query entry domain entity.

ONLY query entry entity - represents the cached server state of one query
key with fetch status, freshness bookkeeping and observer tracking.

Following maximum separation architecture - one file = one purpose.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional

from ..value_objects.query_key import QueryKey
from ..value_objects.query_options import QueryOptions
from ..value_objects.query_status import QueryStatus


@dataclass(frozen=True)
class QueryEntry:
    """Query entry domain entity.

    Immutable snapshot of a cached query. QueryCache replaces the whole entry
    on every change, so a reader always sees a consistent set of fields.

    Each entry contains:
    - Key for identification
    - Last known data (None until the first successful fetch)
    - Fetch status and the last error
    - Freshness bookkeeping (last update, stale window, invalidation flag)
    - Polling interval and observer count for background work gating
    - Provisional flag for optimistic values awaiting confirmation
    """

    # Core identity and content
    key: QueryKey
    data: Any = None

    # Fetch state
    status: QueryStatus = QueryStatus.IDLE
    error: Optional[BaseException] = None

    # Freshness bookkeeping
    last_updated_at: Optional[float] = None
    stale_time_ms: float = 0
    refetch_interval_ms: Optional[float] = None
    is_invalidated: bool = False

    # Observer tracking
    observer_count: int = 0

    # Optimistic writes
    is_optimistic: bool = False

    def __post_init__(self):
        """Validate entry invariants."""
        if self.observer_count < 0:
            raise ValueError("observer_count cannot be negative")

        if self.status == QueryStatus.SUCCESS and self.data is None:
            raise ValueError("A successful query entry must hold data")

        if self.status == QueryStatus.ERROR and self.error is None:
            raise ValueError("A failed query entry must hold an error")

    @classmethod
    def create(cls, key: QueryKey, options: Optional[QueryOptions] = None) -> "QueryEntry":
        """Create an idle entry configured with options."""
        options = options or QueryOptions()
        return cls(
            key=key,
            stale_time_ms=options.stale_time_ms,
            refetch_interval_ms=options.refetch_interval_ms,
        )

    @property
    def has_data(self) -> bool:
        """Check if entry holds a value."""
        return self.data is not None

    @property
    def is_loading(self) -> bool:
        """Check if a fetch is in flight."""
        return self.status == QueryStatus.LOADING

    @property
    def is_error(self) -> bool:
        """Check if the last fetch failed."""
        return self.status == QueryStatus.ERROR

    @property
    def is_observed(self) -> bool:
        """Check if at least one observer is subscribed."""
        return self.observer_count > 0

    def is_stale(self, now_ms: float) -> bool:
        """Check if entry is eligible for refresh.

        Stale iff explicitly invalidated, never fetched, configured as always
        stale, or older than its freshness window.
        """
        if self.is_invalidated or self.last_updated_at is None:
            return True

        if self.stale_time_ms <= 0:
            return True

        return now_ms - self.last_updated_at > self.stale_time_ms

    def age_ms(self, now_ms: float) -> Optional[float]:
        """Milliseconds since the last successful fetch, None if never fetched."""
        if self.last_updated_at is None:
            return None
        return now_ms - self.last_updated_at

    def evolve(self, **changes: Any) -> "QueryEntry":
        """Create a new entry with the given fields changed."""
        return replace(self, **changes)
