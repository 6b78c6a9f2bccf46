"""Query options value object.

ONLY per-query configuration - freshness window, background polling,
retry policy and garbage-collection window.

Following maximum separation architecture - one file = one purpose.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional


@dataclass(frozen=True)
class QueryOptions:
    """Per-query configuration with documented defaults.

    - stale_time_ms: freshness window; 0 means always stale
    - refetch_interval_ms: background polling interval; None/0 disables it
    - retry: extra attempts after a failed fetch; 0 means no retry
    - retry_delay_ms: base delay for exponential retry backoff
    - gc_time_ms: eviction delay once unobserved; None never evicts
    """

    stale_time_ms: float = 0
    refetch_interval_ms: Optional[float] = None
    retry: int = 0
    retry_delay_ms: float = 1000
    gc_time_ms: Optional[float] = None

    def __post_init__(self):
        """Validate option values."""
        if self.stale_time_ms < 0:
            raise ValueError("stale_time_ms must be non-negative")

        if self.refetch_interval_ms is not None and self.refetch_interval_ms < 0:
            raise ValueError("refetch_interval_ms must be non-negative")

        if self.retry < 0:
            raise ValueError("retry must be non-negative")

        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be non-negative")

        if self.gc_time_ms is not None and self.gc_time_ms < 0:
            raise ValueError("gc_time_ms must be non-negative")

    @property
    def polling_enabled(self) -> bool:
        """Check if background polling is configured."""
        return bool(self.refetch_interval_ms)

    def merge(self, **overrides: Any) -> "QueryOptions":
        """Create options with the given fields overridden."""
        return replace(self, **overrides)

    @classmethod
    def from_settings(cls, settings: Any) -> "QueryOptions":
        """Create default options from StreamdashSettings."""
        return cls(
            stale_time_ms=settings.default_stale_time_ms,
            refetch_interval_ms=settings.default_refetch_interval_ms,
            retry=settings.default_retry,
            retry_delay_ms=settings.retry_delay_ms,
            gc_time_ms=settings.gc_time_ms,
        )
