"""aiohttp transport implementation.

ONLY HTTP transport - performs JSON calls against the admin API with
aiohttp and maps failures to TransportError.

Following maximum separation architecture - one file = one purpose.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp

from ...core.exceptions.transport_error import TransportError
from ..configuration.query_config import QueryClientConfig

logger = logging.getLogger(__name__)


class AiohttpTransport:
    """HTTP transport over a shared aiohttp session.

    Features:
    - Lazily created session with timeout and user agent
    - JSON request and response bodies
    - Non-success statuses and connection failures raised as TransportError
    - Externally provided sessions are used as is and never closed
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        user_agent: str = "streamdash/1.0",
        session: Optional[aiohttp.ClientSession] = None
    ):
        """Initialize aiohttp transport.

        Args:
            base_url: API base URL, paths are appended to it
            timeout_seconds: Total timeout of one call
            user_agent: User agent string for HTTP requests
            session: Optional session to use instead of an owned one
        """
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._user_agent = user_agent
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: QueryClientConfig) -> "AiohttpTransport":
        """Create transport from query client configuration."""
        return cls(
            base_url=config.api_base_url,
            timeout_seconds=config.request_timeout_seconds,
            user_agent=config.user_agent,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session.

        Returns:
            Configured aiohttp ClientSession
        """
        if self._session is None or (self._owns_session and self._session.closed):
            timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": self._user_agent, "Accept": "application/json"}
            )
            self._owns_session = True
        return self._session

    def url_for(self, path: str) -> str:
        """Build absolute URL for an API path."""
        return f"{self._base_url}/{path.lstrip('/')}"

    async def call(self, method: str, path: str, body: Optional[Any] = None) -> Any:
        """Perform one API call.

        Args:
            method: HTTP method
            path: API path relative to the base URL, query string included
            body: Optional JSON body

        Returns:
            Decoded JSON response, None for an empty body

        Raises:
            TransportError: On non-success status or network failure
        """
        method = method.upper()
        session = await self._get_session()
        logger.debug("%s %s", method, path)

        try:
            async with session.request(method, self.url_for(path), json=body) as response:
                text = await response.text()
                if response.status >= 400:
                    raise TransportError.from_status(response.status, method, path, text or None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError.network(method, path, e) from e

        if not text.strip():
            return None

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise TransportError(
                f"{method} {path} returned invalid JSON",
                status_code=response.status,
                method=method,
                path=path,
                error_code="INVALID_RESPONSE",
                details={"response_body": text[:500]},
            ) from e

    async def close(self) -> None:
        """Close the owned HTTP session."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None if self._owns_session else self._session
