"""Tests for the query executor."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from streamdash.platform.query.application.commands.query_definition import QueryDefinition
from streamdash.platform.query.application.services.query_cache import QueryCache
from streamdash.platform.query.application.services.query_executor import QueryExecutor
from streamdash.platform.query.core.exceptions.query_not_registered import QueryNotRegistered
from streamdash.platform.query.core.exceptions.transport_error import TransportError
from streamdash.platform.query.core.value_objects.query_key import QueryKey
from streamdash.platform.query.core.value_objects.query_options import QueryOptions
from streamdash.platform.query.core.value_objects.query_status import QueryStatus


STREAMS = QueryKey.of("streams")
LISTING = {"streams": ["orders"], "count": 1}


@pytest.fixture
def cache(clock):
    return QueryCache(clock=clock)


@pytest.fixture
def executor(cache, transport):
    transport.route("GET", "/list", LISTING)
    executor = QueryExecutor(cache, transport)
    executor.register(QueryDefinition.request(STREAMS, "/list"))
    return executor


@pytest.fixture
def observed(cache, recorder):
    """Observe the streams key."""
    return cache.subscribe(STREAMS, recorder)


class TestQueryExecutorFetch:
    """Test fetch execution and deduplication."""

    @pytest.mark.asyncio
    async def test_concurrent_fetches_share_one_call(self, executor, transport, observed):
        """Test every caller joins the single in-flight fetch."""
        futures = [executor.fetch(STREAMS) for _ in range(5)]

        assert all(future is futures[0] for future in futures)

        results = await asyncio.gather(*futures)

        assert results == [LISTING] * 5
        assert transport.count("GET", "/list") == 1
        assert executor.in_flight(STREAMS) is None

    @pytest.mark.asyncio
    async def test_fetch_transitions_entry(self, executor, cache, recorder, observed):
        """Test loading then success, with data stored."""
        await executor.fetch(STREAMS)

        assert [entry.status for entry in recorder.entries] == [QueryStatus.LOADING, QueryStatus.SUCCESS]
        assert cache.get(STREAMS).data == LISTING

    @pytest.mark.asyncio
    async def test_loading_keeps_previous_data(self, executor, cache, recorder, observed):
        """Test observers keep seeing data while a refresh runs."""
        cache.set(STREAMS, {"streams": [], "count": 0})

        await executor.fetch(STREAMS)

        loading = [entry for entry in recorder.entries if entry.status == QueryStatus.LOADING]
        assert loading[0].data == {"streams": [], "count": 0}

    @pytest.mark.asyncio
    async def test_unobserved_fetch_skipped(self, executor, transport, cache):
        """Test no call is made without observers unless forced."""
        cache.set(STREAMS, {"streams": [], "count": 0})

        result = await executor.fetch(STREAMS)

        assert result == {"streams": [], "count": 0}
        assert transport.count("GET") == 0

    @pytest.mark.asyncio
    async def test_forced_fetch_without_observers(self, executor, transport):
        """Test explicit fetches ignore observer gating."""
        assert await executor.fetch(STREAMS, force=True) == LISTING
        assert transport.count("GET", "/list") == 1

    @pytest.mark.asyncio
    async def test_failure_stored_and_raised(self, executor, transport, cache, observed):
        """Test failures land on the entry and reach explicit awaiters."""
        cache.set(STREAMS, {"streams": ["orders"], "count": 1})
        transport.fail("GET", "/list")

        with pytest.raises(TransportError) as exc_info:
            await executor.fetch(STREAMS)

        entry = cache.get(STREAMS)
        assert exc_info.value.status_code == 500
        assert entry.status == QueryStatus.ERROR
        assert entry.error is exc_info.value
        assert entry.data == {"streams": ["orders"], "count": 1}

    @pytest.mark.asyncio
    async def test_null_response_is_an_error(self, executor, transport, cache, observed):
        """Test an empty body never becomes a successful entry."""
        transport.route("GET", "/list", None)

        with pytest.raises(TransportError) as exc_info:
            await executor.fetch(STREAMS)

        assert exc_info.value.error_code == "EMPTY_RESPONSE"
        assert cache.get(STREAMS).status == QueryStatus.ERROR

    @pytest.mark.asyncio
    async def test_unregistered_key(self, executor):
        """Test fetching an undefined key fails fast."""
        with pytest.raises(QueryNotRegistered):
            executor.fetch(["stream", "orders"], force=True)

    @pytest.mark.asyncio
    async def test_definition_options_win_over_defaults(self, cache, transport):
        """Test client defaults apply only to definitions without options."""
        executor = QueryExecutor(cache, transport, QueryOptions(stale_time_ms=5_000))
        own = QueryOptions(stale_time_ms=30_000)

        assert executor.register(QueryDefinition.request(STREAMS, "/list", options=own)) is own
        assert executor.register(QueryDefinition.request(["other"], "/other")).stale_time_ms == 5_000


class TestQueryExecutorSupersede:
    """Test sequence-based discarding of superseded fetches."""

    @pytest.mark.asyncio
    async def test_superseded_result_discarded(self, executor, transport, cache, observed):
        """Test a fetch that predates a write never overwrites it."""
        transport.hold("GET", "/list")
        stale_fetch = executor.fetch(STREAMS)
        await asyncio.sleep(0)

        assert executor.supersede(STREAMS)
        cache.set(STREAMS, {"streams": [], "count": 0})
        transport.release("GET", "/list")

        assert await stale_fetch == LISTING
        assert cache.get(STREAMS).data == {"streams": [], "count": 0}
        assert executor.in_flight(STREAMS) is None

    @pytest.mark.asyncio
    async def test_supersede_without_fetch(self, executor):
        """Test superseding an idle key is a no-op."""
        assert not executor.supersede(STREAMS)

    @pytest.mark.asyncio
    async def test_supersede_restores_previous_status(self, executor, transport, cache):
        """Test a superseded fetch leaves no entry stuck in loading."""
        cache.set(STREAMS, {"streams": [], "count": 0})
        transport.hold("GET", "/list")
        stale_fetch = executor.fetch(STREAMS, force=True)
        await asyncio.sleep(0)
        assert cache.get(STREAMS).status == QueryStatus.LOADING

        assert executor.supersede(STREAMS)

        assert cache.get(STREAMS).status == QueryStatus.SUCCESS
        assert not executor.is_fetching(STREAMS)

        transport.release("GET", "/list")
        await stale_fetch

        entry = cache.get(STREAMS)
        assert entry.status == QueryStatus.SUCCESS
        assert entry.data == {"streams": [], "count": 0}

    @pytest.mark.asyncio
    async def test_supersede_first_fetch_returns_to_idle(self, executor, transport, cache):
        """Test a key that never held data goes back to idle."""
        transport.hold("GET", "/list")
        stale_fetch = executor.fetch(STREAMS, force=True)
        await asyncio.sleep(0)

        executor.supersede(STREAMS)
        transport.release("GET", "/list")
        await stale_fetch

        entry = cache.get(STREAMS)
        assert entry.status == QueryStatus.IDLE
        assert entry.data is None

    @pytest.mark.asyncio
    async def test_cancel_all_restores_status(self, executor, transport, cache):
        """Test cancelled fetches return their entries to the prior status."""
        cache.set(STREAMS, {"streams": [], "count": 0})
        transport.hold("GET", "/list")
        executor.fetch(STREAMS, force=True)
        await asyncio.sleep(0)

        await executor.cancel_all()

        assert cache.get(STREAMS).status == QueryStatus.SUCCESS
        assert not executor.is_fetching(STREAMS)

    @pytest.mark.asyncio
    async def test_refetch_replaces_in_flight_fetch(self, executor, transport, cache, observed):
        """Test refetch starts a new fetch whose result wins."""
        versions = iter([{"version": 1}, {"version": 2}])
        transport.route("GET", "/list", lambda body: next(versions))
        transport.hold("GET", "/list")

        first = executor.fetch(STREAMS)
        await asyncio.sleep(0)
        second = executor.refetch(STREAMS)

        assert second is not first
        transport.release("GET", "/list")
        stale, current = await asyncio.gather(first, second)

        assert transport.count("GET", "/list") == 2
        assert stale != current
        assert cache.get(STREAMS).data == current

    @pytest.mark.asyncio
    async def test_refetch_skips_unobserved(self, executor, transport):
        """Test eager refetches only target observed keys."""
        assert executor.refetch(STREAMS) is None
        assert transport.count("GET") == 0


class TestQueryExecutorRetry:
    """Test opt-in retry."""

    @pytest.mark.asyncio
    async def test_no_retry_by_default(self, executor, transport, observed):
        """Test a failure is final unless retry is configured."""
        transport.fail("GET", "/list")

        with pytest.raises(TransportError):
            await executor.fetch(STREAMS)

        assert transport.count("GET", "/list") == 1

    @pytest.mark.asyncio
    async def test_retry_until_success(self, cache, transport, observed):
        """Test transport failures are retried up to the configured count."""
        transport.route("GET", "/list", LISTING)
        transport.fail("GET", "/list", times=2)
        executor = QueryExecutor(cache, transport)
        executor.register(
            QueryDefinition.request(STREAMS, "/list", options=QueryOptions(retry=2, retry_delay_ms=1))
        )

        assert await executor.fetch(STREAMS) == LISTING
        assert transport.count("GET", "/list") == 3
        assert executor.transport_calls == 3

    @pytest.mark.asyncio
    async def test_backoff_doubles_and_caps(self, cache, transport, observed, mocker):
        """Test delays grow exponentially up to thirty seconds."""
        sleep = mocker.patch(
            "streamdash.platform.query.application.services.query_executor.asyncio.sleep",
            new=AsyncMock(),
        )
        transport.route("GET", "/list", LISTING)
        transport.fail("GET", "/list", times=3)
        executor = QueryExecutor(cache, transport)
        executor.register(
            QueryDefinition.request(STREAMS, "/list", options=QueryOptions(retry=3, retry_delay_ms=20_000))
        )

        await executor.fetch(STREAMS)

        assert [call.args[0] for call in sleep.await_args_list] == [20.0, 30.0, 30.0]

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self, cache, transport, observed):
        """Test only transport failures are retried."""
        fetch = AsyncMock(side_effect=KeyError("streams"))
        executor = QueryExecutor(cache, transport)
        executor.register(QueryDefinition(STREAMS, fetch, QueryOptions(retry=3, retry_delay_ms=1)))

        with pytest.raises(KeyError):
            await executor.fetch(STREAMS)

        assert fetch.await_count == 1
