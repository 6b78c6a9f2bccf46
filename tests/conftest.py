"""Pytest configuration and fixtures for streamdash tests."""

import asyncio
import copy
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from streamdash.config.settings import StreamdashSettings
from streamdash.platform.query.application.services.query_client import QueryClient
from streamdash.platform.query.core.exceptions.transport_error import TransportError
from streamdash.platform.query.core.value_objects.query_options import QueryOptions


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeTransport:
    """Scriptable in-memory transport.

    Routes map (method, path) to a value or to a callable receiving the
    body. Calls can be held on an asyncio.Event and failures can be queued
    per route.
    """

    def __init__(self):
        self.calls: List[Tuple[str, str, Any]] = []
        self._routes: Dict[Tuple[str, str], Any] = {}
        self._failures: Dict[Tuple[str, str], List[BaseException]] = defaultdict(list)
        self._gates: Dict[Tuple[str, str], asyncio.Event] = {}

    def route(self, method: str, path: str, response: Any) -> None:
        self._routes[(method, path)] = response

    def fail(self, method: str, path: str, error: Optional[BaseException] = None, times: int = 1) -> None:
        for _ in range(times):
            self._failures[(method, path)].append(
                error or TransportError.from_status(500, method, path)
            )

    def hold(self, method: str, path: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[(method, path)] = gate
        return gate

    def release(self, method: str, path: str) -> None:
        gate = self._gates.pop((method, path), None)
        if gate is not None:
            gate.set()

    def count(self, method: str, path: Optional[str] = None) -> int:
        return sum(
            1 for call_method, call_path, _ in self.calls
            if call_method == method and (path is None or call_path == path)
        )

    async def call(self, method: str, path: str, body: Any = None) -> Any:
        self.calls.append((method, path, body))

        gate = self._gates.get((method, path))
        if gate is not None:
            await gate.wait()

        failures = self._failures.get((method, path))
        if failures:
            raise failures.pop(0)

        if (method, path) not in self._routes:
            raise TransportError.from_status(404, method, path)

        response = self._routes[(method, path)]
        if callable(response):
            return response(body)
        return copy.deepcopy(response)


class FakeStreamApi(FakeTransport):
    """Stateful stand-in for the stream admin API."""

    def __init__(self, streams: Optional[List[str]] = None):
        super().__init__()
        self.streams: List[str] = list(streams or [])
        self.messages: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.rejected_deletes: set = set()
        self._sequence = 0

        self.route("GET", "/list", lambda body: {"streams": list(self.streams), "count": len(self.streams)})
        self.route("DELETE", "/stream", self._delete)
        self.route("POST", "/stream/message", self._publish)

    def arn(self, name: str) -> str:
        return f"arn:aws:kinesis:us-east-1:000000000000:stream/{name}"

    def describe_path(self, name: str) -> str:
        return f"/stream/describe?streamName={name}"

    def messages_path(self, name: str, limit: int = 40) -> str:
        return f"/stream/messages?streamName={name}&limit={limit}"

    def add_stream(self, name: str) -> None:
        self.streams.append(name)
        self.route("GET", self.describe_path(name), lambda body: {
            "streamName": name,
            "streamArn": self.arn(name),
            "status": "ACTIVE",
            "retentionHours": 24,
            "shardCount": 1,
            "encryptionType": "NONE",
        })
        self.route("GET", self.messages_path(name), lambda body: {
            "records": list(self.messages[name]) or None,
            "count": len(self.messages[name]),
            "shards": 1,
        })

    def _delete(self, body: Dict[str, Any]) -> Dict[str, Any]:
        name = body["streamName"]
        if name in self.rejected_deletes:
            raise TransportError.from_status(500, "DELETE", "/stream", f"cannot delete {name}")
        self.streams.remove(name)
        return {"status": "deleted", "stream": name}

    def _publish(self, body: Dict[str, Any]) -> Dict[str, Any]:
        name = body["streamArn"].rsplit("/", 1)[-1]
        self._sequence += 1
        partition_key = body.get("partitionKey") or f"generated-{self._sequence}"
        self.messages[name].append({
            "shardId": "shardId-000000000000",
            "partitionKey": partition_key,
            "sequenceNumber": str(self._sequence),
            "approximateArrivalTimestamp": "2024-05-01T12:00:00Z",
            "dataBase64": body["data"],
        })
        return {
            "shardId": "shardId-000000000000",
            "sequenceNumber": str(self._sequence),
            "partitionKey": partition_key,
        }


async def drain(client: QueryClient, rounds: int = 5) -> None:
    """Let scheduled tasks run and wait for outstanding fetches."""
    for _ in range(rounds):
        await asyncio.sleep(0)
    await client.executor.wait_idle()


class Recorder:
    """Observer callback recording every entry it receives."""

    def __init__(self):
        self.entries: List[Any] = []

    def __call__(self, entry: Any) -> None:
        self.entries.append(entry)

    @property
    def last(self) -> Any:
        return self.entries[-1] if self.entries else None

    def data_history(self) -> List[Any]:
        return [entry.data for entry in self.entries]


@pytest.fixture
def clock():
    """Fake millisecond clock."""
    return FakeClock()


@pytest.fixture
def transport():
    """Scriptable fake transport."""
    return FakeTransport()


@pytest.fixture
def stream_api():
    """Fake stream admin API with three streams."""
    api = FakeStreamApi()
    for name in ("orders", "payments", "audit"):
        api.add_stream(name)
    return api


@pytest.fixture
def recorder():
    """Recording observer."""
    return Recorder()


@pytest.fixture
def settings():
    """Settings isolated from the environment."""
    return StreamdashSettings(_env_file=None)


@pytest_asyncio.fixture
async def client(transport, clock):
    """Query client over the fake transport."""
    query_client = QueryClient(transport, clock=clock)
    yield query_client
    await query_client.close()


@pytest_asyncio.fixture
async def stream_client(stream_api, clock):
    """Query client over the fake stream admin API."""
    query_client = QueryClient(stream_api, default_options=QueryOptions(), clock=clock)
    yield query_client
    await query_client.close()


@pytest.fixture
def make_recorder():
    """Factory for additional recording observers."""
    return Recorder


@pytest.fixture(name="drain")
def drain_fixture():
    """Helper that runs pending tasks and waits for fetches."""
    return drain
