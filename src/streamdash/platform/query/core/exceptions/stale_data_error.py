"""Stale data exception.

ONLY freshness violations - exception for strict consumers that refuse to
read a stale query entry.

Following maximum separation architecture - one file = one purpose.
"""

from typing import Optional

from .....core.exceptions.base import StreamdashError


class StaleDataError(StreamdashError):
    """Raised when fresh data is required but the cached entry is stale.

    Never raised automatically by the core; available to consumers that opt
    into strict freshness checks.
    """

    def __init__(self, key: str, age_ms: Optional[float] = None, stale_time_ms: Optional[float] = None):
        self.key = key
        self.age_ms = age_ms
        self.stale_time_ms = stale_time_ms

        if age_ms is None:
            message = f"Query {key} has never been fetched"
        else:
            message = f"Query {key} is stale (age {age_ms:.0f}ms, window {stale_time_ms}ms)"

        super().__init__(
            message,
            error_code="STALE_DATA",
            details={"key": key, "age_ms": age_ms, "stale_time_ms": stale_time_ms},
        )
