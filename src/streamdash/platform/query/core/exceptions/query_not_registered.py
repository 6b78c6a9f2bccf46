"""Query not registered exception.

ONLY missing definitions - exception raised when a fetch is requested for a
key that has no query definition.

Following maximum separation architecture - one file = one purpose.
"""

from .....core.exceptions.base import StreamdashError


class QueryNotRegistered(StreamdashError, LookupError):
    """No query definition is registered for the requested key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(
            f"No query definition registered for {key}",
            error_code="QUERY_NOT_REGISTERED",
            details={"key": key},
        )
