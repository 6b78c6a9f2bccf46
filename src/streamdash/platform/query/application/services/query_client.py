"""Query client service.

ONLY client facade - wires cache, executor, scheduler, invalidation bus and
mutation controller into the surface used by views and feature services.

Following maximum separation architecture - one file = one purpose.
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence, Union

from ...core.entities.query_entry import QueryEntry
from ...core.exceptions.stale_data_error import StaleDataError
from ...core.protocols.observer import QueryObserver, Unsubscribe
from ...core.protocols.transport import Transport
from ...core.value_objects.query_key import KeyLike, QueryKey
from ...core.value_objects.query_options import QueryOptions
from ...infrastructure.configuration.query_config import QueryClientConfig
from ...infrastructure.transports.aiohttp_transport import AiohttpTransport
from ..commands.mutation_descriptor import BulkMutationResult, MutationDescriptor
from ..commands.query_definition import QueryDefinition
from .invalidation_bus import InvalidationBus
from .mutation_controller import MutationController
from .query_cache import QueryCache
from .query_executor import QueryExecutor
from .refetch_scheduler import RefetchScheduler
from .....utils.clock import Clock

logger = logging.getLogger(__name__)

KeyOrDefinition = Union[KeyLike, QueryDefinition]


class QueryClient:
    """Query client facade.

    Owns one explicit cache instance and the services operating on it.
    Usable as an async context manager; close() stops polling and cancels
    outstanding fetches.
    """

    def __init__(
        self,
        transport: Transport,
        default_options: Optional[QueryOptions] = None,
        clock: Optional[Clock] = None,
        gc_time_ms: Optional[float] = None
    ):
        """Initialize query client.

        Args:
            transport: Transport used for every fetch and mutation
            default_options: Options for definitions that declare none
            clock: Millisecond clock, monotonic by default
            gc_time_ms: Eviction delay for entries created without options
        """
        self.transport = transport
        self.default_options = default_options or QueryOptions()

        self.cache = QueryCache(clock=clock, gc_time_ms=gc_time_ms)
        self.executor = QueryExecutor(self.cache, transport, self.default_options)
        self.scheduler = RefetchScheduler(self.cache, self.executor)
        self.invalidation = InvalidationBus(self.cache, self.executor)
        self.mutations = MutationController(self.cache, self.executor, self.invalidation, transport)

        self._owns_transport = False
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config: Optional[QueryClientConfig] = None,
        transport: Optional[Transport] = None,
        clock: Optional[Clock] = None
    ) -> "QueryClient":
        """Create client from configuration, with an aiohttp transport by default."""
        config = config or QueryClientConfig.from_settings()
        owned = transport is None
        client = cls(
            transport=transport or AiohttpTransport.from_config(config),
            default_options=config.default_options,
            clock=clock,
            gc_time_ms=config.gc_time_ms,
        )
        client._owns_transport = owned
        logger.debug("Query client created: %s", config.to_dict())
        return client

    # Reads

    def subscribe(self, target: KeyOrDefinition, callback: QueryObserver) -> Unsubscribe:
        """Observe a query, starting a background fetch if it is stale.

        Args:
            target: Query definition, or key of an already registered one
            callback: Invoked synchronously with the entry on every change

        Returns:
            Function that removes the observer (idempotent)
        """
        key = self._register(target)
        unsubscribe = self.cache.subscribe(key, callback)

        if self.executor.definition(key) is not None and self.cache.is_stale(key):
            self._fetch_in_background(key)

        return unsubscribe

    def get_snapshot(self, key: KeyLike) -> QueryEntry:
        """Get the current entry of key, an idle entry if none exists."""
        query_key = QueryKey.coerce(key)
        entry = self.cache.get(query_key)
        if entry is None:
            return QueryEntry.create(query_key, self.executor.options_for(query_key))
        return entry

    async def fetch_query(self, target: KeyOrDefinition) -> Any:
        """Fetch a query regardless of observers and wait for the data.

        Raises:
            QueryNotRegistered: If the key has no definition
            TransportError: If the fetch fails
        """
        key = self._register(target)
        return await self.executor.fetch(key, force=True)

    async def ensure_query_data(self, target: KeyOrDefinition) -> Any:
        """Get cached data while fresh, fetching it otherwise."""
        key = self._register(target)
        entry = self.cache.get(key)
        if entry is not None and entry.has_data and not entry.is_stale(self.cache.now()):
            logger.debug("Cache hit for %s", key)
            return entry.data
        return await self.executor.fetch(key, force=True)

    def get_fresh_data(self, key: KeyLike) -> Any:
        """Get cached data, insisting on freshness.

        Raises:
            StaleDataError: If the entry is missing or stale
        """
        query_key = QueryKey.coerce(key)
        entry = self.cache.get(query_key)
        now = self.cache.now()
        if entry is None or not entry.has_data or entry.is_stale(now):
            age = entry.age_ms(now) if entry else None
            stale_time = entry.stale_time_ms if entry else None
            raise StaleDataError(str(query_key), age_ms=age, stale_time_ms=stale_time)
        return entry.data

    def is_fetching(self, key: KeyLike) -> bool:
        """Check if a fetch for key is outstanding."""
        return self.executor.is_fetching(key)

    # Writes

    def set_query_data(self, key: KeyLike, data: Any) -> QueryEntry:
        """Store data for key as fresh server state."""
        return self.cache.set(key, data)

    async def mutate(self, descriptor: MutationDescriptor) -> Any:
        """Run one mutation to settlement."""
        return await self.mutations.mutate(descriptor)

    async def mutate_all(self, descriptors: Sequence[MutationDescriptor]) -> BulkMutationResult:
        """Run mutations concurrently and aggregate their outcomes."""
        return await self.mutations.mutate_all(descriptors)

    def is_mutating(self, key: Optional[KeyLike] = None) -> bool:
        """Check if a mutation (targeting key) is in flight."""
        return self.mutations.is_mutating(key)

    def invalidate(self, target: KeyLike) -> List[QueryKey]:
        """Invalidate every query whose key equals or extends target."""
        return self.invalidation.mark_stale(target)

    # Lifecycle

    async def close(self) -> None:
        """Stop polling, cancel outstanding fetches and release the transport."""
        if self._closed:
            return
        self._closed = True

        await self.scheduler.shutdown()

        await self.executor.cancel_all()

        if self._owns_transport:
            close = getattr(self.transport, "close", None)
            if close is not None:
                await close()

        logger.debug("Query client closed")

    async def __aenter__(self) -> "QueryClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # Internals

    def _register(self, target: KeyOrDefinition) -> QueryKey:
        """Register definition and apply its options to the entry."""
        if isinstance(target, QueryDefinition):
            options = self.executor.register(target)
            self.cache.configure(target.key, options)
            self.scheduler.sync(target.key)
            return target.key
        return QueryKey.coerce(target)

    def _fetch_in_background(self, key: QueryKey) -> None:
        """Start a fetch whose failure only lands on the entry."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, initial fetch of %s deferred", key)
            return
        self.executor.fetch(key)
