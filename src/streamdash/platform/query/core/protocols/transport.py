"""Transport protocol.

ONLY network call contract - defines the interface the query core uses to
reach the remote source of truth.

Following maximum separation architecture - one file = one purpose.
"""

from typing import Any, Optional
from typing_extensions import Protocol, runtime_checkable


@runtime_checkable
class Transport(Protocol):
    """Transport protocol.

    Performs one network call and returns its JSON-decoded result.

    Implementations must:
    - Raise TransportError for any non-success status or network failure
    - Never retry on their own (retry is a per-query option)
    - Leave response body interpretation to the caller
    """

    async def call(self, method: str, path: str, body: Optional[Any] = None) -> Any:
        """Perform a call and return the decoded response body.

        Args:
            method: HTTP method (GET, POST, DELETE, ...)
            path: Path relative to the service base URL, query string included
            body: Optional JSON-serializable request body

        Raises:
            TransportError: On non-success status or network failure
        """
        ...
