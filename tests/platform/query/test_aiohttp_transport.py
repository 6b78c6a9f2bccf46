"""Tests for the aiohttp transport."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from streamdash.platform.query.core.exceptions.transport_error import TransportError
from streamdash.platform.query.infrastructure.configuration.query_config import QueryClientConfig
from streamdash.platform.query.infrastructure.transports.aiohttp_transport import AiohttpTransport


def make_response(status: int, text: str):
    """Build an async context manager yielding a fake response."""
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


@pytest.fixture
def session():
    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    session.request.return_value = make_response(200, '{"streams": ["orders"], "count": 1}')
    return session


@pytest.fixture
def http(session):
    return AiohttpTransport("http://streams.local/api/", session=session)


class TestAiohttpTransport:
    """Test request building and error mapping."""

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, http, session):
        """Test responses are decoded and paths joined to the base URL."""
        result = await http.call("get", "/list")

        assert result == {"streams": ["orders"], "count": 1}
        session.request.assert_called_once_with("GET", "http://streams.local/api/list", json=None)

    @pytest.mark.asyncio
    async def test_body_sent_as_json(self, http, session):
        """Test request bodies are JSON encoded."""
        session.request.return_value = make_response(200, '{"status": "deleted", "stream": "orders"}')

        await http.call("DELETE", "/stream", {"streamName": "orders"})

        session.request.assert_called_once_with(
            "DELETE", "http://streams.local/api/stream", json={"streamName": "orders"}
        )

    @pytest.mark.asyncio
    async def test_error_status(self, http, session):
        """Test non-success statuses raise with status and body."""
        session.request.return_value = make_response(404, "stream not found")

        with pytest.raises(TransportError) as exc_info:
            await http.call("GET", "/stream/describe?streamName=missing")

        error = exc_info.value
        assert error.status_code == 404
        assert error.is_client_error
        assert error.error_code == "HTTP_404"
        assert error.details["response_body"] == "stream not found"
        assert error.path == "/stream/describe?streamName=missing"

    @pytest.mark.asyncio
    async def test_server_error(self, http, session):
        """Test 5xx responses are server errors."""
        session.request.return_value = make_response(502, "")

        with pytest.raises(TransportError) as exc_info:
            await http.call("GET", "/list")

        assert exc_info.value.is_server_error

    @pytest.mark.asyncio
    async def test_empty_body(self, http, session):
        """Test empty responses decode to None."""
        session.request.return_value = make_response(200, "  ")

        assert await http.call("POST", "/stream/message", {"data": "x"}) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", [
        aiohttp.ClientConnectionError("connection refused"),
        asyncio.TimeoutError(),
    ])
    async def test_network_failure(self, http, session, failure):
        """Test connection failures and timeouts become network errors."""
        session.request.side_effect = failure

        with pytest.raises(TransportError) as exc_info:
            await http.call("GET", "/list")

        assert exc_info.value.is_network_error
        assert exc_info.value.error_code == "NETWORK_ERROR"
        assert exc_info.value.__cause__ is failure

    @pytest.mark.asyncio
    async def test_invalid_json(self, http, session):
        """Test undecodable bodies are reported as invalid responses."""
        session.request.return_value = make_response(200, "<html>")

        with pytest.raises(TransportError) as exc_info:
            await http.call("GET", "/list")

        assert exc_info.value.error_code == "INVALID_RESPONSE"
        assert exc_info.value.status_code == 200

    @pytest.mark.asyncio
    async def test_injected_session_left_open(self, http, session):
        """Test close never closes a session it does not own."""
        await http.close()

        session.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_owned_session_lifecycle(self):
        """Test the owned session is created lazily and closed."""
        http = AiohttpTransport("http://streams.local/api", timeout_seconds=5, user_agent="tests/1.0")

        session = await http._get_session()

        assert await http._get_session() is session
        assert session.headers["User-Agent"] == "tests/1.0"
        assert session.timeout.total == 5

        await http.close()

        assert session.closed

    def test_from_config(self):
        """Test transport settings come from client configuration."""
        config = QueryClientConfig(api_base_url="http://example.test/api/", request_timeout_seconds=3)

        http = AiohttpTransport.from_config(config)

        assert http.base_url == "http://example.test/api"
        assert http.url_for("list") == "http://example.test/api/list"
