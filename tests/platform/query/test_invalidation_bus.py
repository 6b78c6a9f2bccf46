"""Tests for prefix invalidation."""

import pytest

from streamdash.platform.query.application.commands.query_definition import QueryDefinition
from streamdash.platform.query.application.services.invalidation_bus import InvalidationBus
from streamdash.platform.query.application.services.query_cache import QueryCache
from streamdash.platform.query.application.services.query_executor import QueryExecutor
from streamdash.platform.query.core.value_objects.query_key import QueryKey


ORDERS = QueryKey.of("stream-messages", "orders")
AUDIT = QueryKey.of("stream-messages", "audit")


@pytest.fixture
def cache(clock):
    cache = QueryCache(clock=clock)
    cache.set(ORDERS, {"records": [], "count": 0})
    cache.set(AUDIT, {"records": [], "count": 0})
    cache.set(["streams"], {"streams": ["orders", "audit"], "count": 2})
    return cache


@pytest.fixture
def executor(cache, transport):
    executor = QueryExecutor(cache, transport)
    for key in (ORDERS, AUDIT):
        path = f"/stream/messages?streamName={key.segments[1]}&limit=40"
        transport.route("GET", path, {"records": [], "count": 0, "fresh": True})
        executor.register(QueryDefinition.request(key, path))
    return executor


@pytest.fixture
def bus(cache, executor):
    return InvalidationBus(cache, executor)


class TestInvalidationBus:
    """Test staleness flags and eager refresh."""

    @pytest.mark.asyncio
    async def test_observed_matches_refetched_eagerly(self, bus, cache, executor, transport, recorder):
        """Test only observed matches are refetched, the rest stay flagged."""
        cache.subscribe(ORDERS, recorder)

        keys = bus.mark_stale(["stream-messages"])
        await executor.wait_idle()

        assert set(keys) == {ORDERS, AUDIT}
        assert transport.count("GET", "/stream/messages?streamName=orders&limit=40") == 1
        assert transport.count("GET", "/stream/messages?streamName=audit&limit=40") == 0
        assert cache.get(ORDERS).data["fresh"]
        assert not cache.get(ORDERS).is_invalidated
        assert cache.get(AUDIT).is_invalidated
        assert not cache.get(["streams"]).is_invalidated

    @pytest.mark.asyncio
    async def test_stats(self, bus, cache, executor, recorder):
        """Test monitoring counters."""
        cache.subscribe(ORDERS, recorder)

        bus.mark_stale(["stream-messages"])
        bus.mark_stale(["unknown"])
        await executor.wait_idle()

        assert bus.stats.total_invalidations == 2
        assert bus.stats.total_keys_invalidated == 2
        assert bus.stats.eager_refetches == 1

        bus.stats.reset()
        assert bus.stats.total_invalidations == 0

    @pytest.mark.asyncio
    async def test_listeners(self, bus, caplog):
        """Test listeners see every invalidation and may fail safely."""
        seen = []
        remove = bus.add_listener(lambda target, keys: seen.append((target, keys)))
        bus.add_listener(lambda target, keys: 1 / 0)

        bus.mark_stale(["stream-messages", "orders"])
        remove()
        bus.mark_stale(["streams"])

        assert seen == [(ORDERS, [ORDERS])]
        assert "Invalidation listener failed" in caplog.text

    def test_without_event_loop(self, bus, cache, transport, recorder):
        """Test flags are recorded even when no refresh can start."""
        cache.subscribe(ORDERS, recorder)

        assert bus.mark_stale(ORDERS) == [ORDERS]
        assert cache.get(ORDERS).is_invalidated
        assert transport.calls == []
