"""Transport error exception.

ONLY transport failures - exception raised when a network call fails or
the remote service answers with a non-success status.

Following maximum separation architecture - one file = one purpose.
"""

from typing import Any, Dict, Optional

from .....core.exceptions.base import StreamdashError


class TransportError(StreamdashError):
    """Transport call failure.

    Raised for:
    - Non-success HTTP status codes (status_code is set)
    - Connection failures and timeouts (status_code is None)

    The core treats every TransportError as a uniform failure; callers
    inspect status_code when they need finer handling.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        path: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize transport error.

        Args:
            message: Human readable failure description
            status_code: HTTP status code, None for network failures
            method: Request method of the failed call
            path: Request path of the failed call
            error_code: Optional machine-readable error code
            details: Optional additional error details
        """
        self.status_code = status_code
        self.method = method
        self.path = path

        merged_details = {"status_code": status_code, "method": method, "path": path}
        merged_details.update(details or {})

        super().__init__(
            message,
            error_code=error_code or ("NETWORK_ERROR" if status_code is None else f"HTTP_{status_code}"),
            details=merged_details,
        )

    @classmethod
    def from_status(
        cls,
        status_code: int,
        method: str,
        path: str,
        body: Optional[str] = None
    ) -> "TransportError":
        """Create error for a non-success response."""
        message = f"{method} {path} failed with HTTP {status_code}"
        details = {"response_body": body} if body else None
        return cls(message, status_code=status_code, method=method, path=path, details=details)

    @classmethod
    def network(cls, method: str, path: str, cause: BaseException) -> "TransportError":
        """Create error for a connection failure or timeout."""
        reason = str(cause) or cause.__class__.__name__
        return cls(
            f"{method} {path} failed: {reason}",
            method=method,
            path=path,
            details={"cause": cause.__class__.__name__},
        )

    @property
    def is_network_error(self) -> bool:
        """Check if the call never got a response."""
        return self.status_code is None

    @property
    def is_client_error(self) -> bool:
        """Check if the service rejected the request (4xx)."""
        return self.status_code is not None and 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        """Check if the service failed (5xx)."""
        return self.status_code is not None and self.status_code >= 500
