"""Query executor service.

ONLY fetch execution - fetches query data through the transport with
per-key deduplication of in-flight fetches, sequence-based discarding of
superseded results and optional retry.

Following maximum separation architecture - one file = one purpose.
"""

import asyncio
import logging
from typing import Any, Dict, NamedTuple, Optional

from ...core.exceptions.query_not_registered import QueryNotRegistered
from ...core.exceptions.transport_error import TransportError
from ...core.protocols.transport import Transport
from ...core.value_objects.query_key import KeyLike, QueryKey
from ...core.value_objects.query_options import QueryOptions
from ...core.value_objects.query_status import QueryStatus
from ..commands.query_definition import QueryDefinition
from .query_cache import QueryCache

logger = logging.getLogger(__name__)

MAX_RETRY_DELAY_MS = 30_000


class InFlightFetch(NamedTuple):
    """Outstanding fetch of one key and the entry status it interrupted."""

    sequence: int
    task: "asyncio.Task[Any]"
    previous_status: QueryStatus
    previous_error: Optional[BaseException]


class QueryExecutor:
    """Query fetch executor.

    Features:
    - At most one in-flight fetch per key, shared by every caller
    - Stale-while-revalidate (loading keeps previous data)
    - Superseding: a fetch whose sequence number is no longer current
      resolves for its awaiters but never writes to the cache
    - Observer gating: keys without observers are only fetched on request
    - Opt-in retry with exponential backoff for transport failures
    """

    def __init__(
        self,
        cache: QueryCache,
        transport: Transport,
        default_options: Optional[QueryOptions] = None
    ):
        """Initialize query executor.

        Args:
            cache: Query cache receiving fetch results
            transport: Transport used by query definitions
            default_options: Options for definitions that declare none
        """
        self._cache = cache
        self._transport = transport
        self._default_options = default_options or QueryOptions()
        self._definitions: Dict[QueryKey, QueryDefinition] = {}
        self._in_flight: Dict[QueryKey, InFlightFetch] = {}
        self._sequence: Dict[QueryKey, int] = {}
        self._transport_calls = 0

    @property
    def transport_calls(self) -> int:
        """Number of fetch attempts issued to the transport."""
        return self._transport_calls

    # Definitions

    def register(self, definition: QueryDefinition) -> QueryOptions:
        """Register or replace the definition of a key.

        Returns:
            The options effective for the definition
        """
        self._definitions[definition.key] = definition
        return definition.resolve_options(self._default_options)

    def definition(self, key: KeyLike) -> Optional[QueryDefinition]:
        """Get definition of key."""
        return self._definitions.get(QueryKey.coerce(key))

    def options_for(self, key: KeyLike) -> QueryOptions:
        """Get options effective for key."""
        definition = self.definition(key)
        if definition is None:
            return self._default_options
        return definition.resolve_options(self._default_options)

    # Fetching

    def fetch(self, key: KeyLike, force: bool = False) -> "asyncio.Future[Any]":
        """Fetch key, joining an in-flight fetch when one exists.

        Args:
            key: Query key to fetch
            force: Fetch even when the key has no observers

        Returns:
            Future resolving to the fetched data. Without observers and
            without force, no call is made and the future resolves to the
            cached data.

        Raises:
            QueryNotRegistered: If the key has no definition
        """
        query_key = QueryKey.coerce(key)

        in_flight = self._in_flight.get(query_key)
        if in_flight is not None:
            logger.debug("Joining in-flight fetch for %s", query_key)
            return in_flight.task

        definition = self._definitions.get(query_key)
        if definition is None:
            raise QueryNotRegistered(str(query_key))

        loop = asyncio.get_running_loop()

        if not force and self._cache.observer_count(query_key) == 0:
            logger.debug("Skipping fetch for unobserved query %s", query_key)
            future = loop.create_future()
            entry = self._cache.get(query_key)
            future.set_result(entry.data if entry else None)
            return future

        sequence = self._sequence.get(query_key, 0) + 1
        self._sequence[query_key] = sequence

        previous = self._cache.ensure(query_key)
        self._cache.set_loading(query_key)
        task = loop.create_task(self._run(query_key, definition, sequence))
        self._in_flight[query_key] = InFlightFetch(sequence, task, previous.status, previous.error)
        task.add_done_callback(lambda done: self._on_done(query_key, sequence, done))
        return task

    def refetch(self, key: KeyLike) -> Optional["asyncio.Future[Any]"]:
        """Start a new fetch for an observed key, superseding any in-flight one.

        Returns:
            The new fetch, or None when the key is unobserved or undefined
        """
        query_key = QueryKey.coerce(key)
        if self._cache.observer_count(query_key) == 0 or query_key not in self._definitions:
            return None
        self.supersede(query_key)
        return self.fetch(query_key)

    def supersede(self, key: KeyLike) -> bool:
        """Detach the in-flight fetch of key so its result is ignored.

        The entry returns to the status it had before the fetch started.

        Returns:
            True if a fetch was superseded
        """
        query_key = QueryKey.coerce(key)
        in_flight = self._in_flight.pop(query_key, None)
        if in_flight is None:
            return False
        self._sequence[query_key] = self._sequence.get(query_key, 0) + 1
        self._cache.restore_status(query_key, in_flight.previous_status, in_flight.previous_error)
        logger.debug("Superseded in-flight fetch for %s", query_key)
        return True

    def in_flight(self, key: KeyLike) -> Optional["asyncio.Future[Any]"]:
        """Get the outstanding fetch of key."""
        in_flight = self._in_flight.get(QueryKey.coerce(key))
        return in_flight.task if in_flight else None

    def is_fetching(self, key: KeyLike) -> bool:
        """Check if a fetch for key is outstanding."""
        return QueryKey.coerce(key) in self._in_flight

    async def wait_idle(self) -> None:
        """Wait until no fetch is outstanding, ignoring their failures."""
        while self._in_flight:
            tasks = [fetch.task for fetch in self._in_flight.values()]
            await asyncio.gather(*tasks, return_exceptions=True)

    async def cancel_all(self) -> None:
        """Cancel every outstanding fetch."""
        outstanding = list(self._in_flight.items())
        self._in_flight.clear()
        tasks = [fetch.task for _, fetch in outstanding]
        for key, fetch in outstanding:
            fetch.task.cancel()
            self._cache.restore_status(key, fetch.previous_status, fetch.previous_error)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # Internals

    def _is_current(self, key: QueryKey, sequence: int) -> bool:
        """Check if sequence is the latest issued for key."""
        return self._sequence.get(key) == sequence

    async def _run(self, key: QueryKey, definition: QueryDefinition, sequence: int) -> Any:
        """Execute one fetch cycle and apply its outcome."""
        options = definition.resolve_options(self._default_options)
        try:
            data = await self._call_with_retry(key, definition, options)
        except asyncio.CancelledError:
            raise
        except Exception as error:
            if self._is_current(key, sequence):
                self._cache.set_error(key, error)
            else:
                logger.debug("Discarding superseded fetch failure for %s", key)
            raise

        if self._is_current(key, sequence):
            if data is None:
                error = TransportError(f"Empty response for query {key}", error_code="EMPTY_RESPONSE")
                self._cache.set_error(key, error)
                raise error
            self._cache.set(key, data)
            logger.debug("Fetched %s", key)
        else:
            logger.debug("Discarding superseded fetch result for %s", key)
        return data

    async def _call_with_retry(
        self,
        key: QueryKey,
        definition: QueryDefinition,
        options: QueryOptions
    ) -> Any:
        """Call the definition's fetch function, retrying transport failures."""
        attempt = 0
        while True:
            self._transport_calls += 1
            try:
                return await definition.fetch(self._transport)
            except TransportError as error:
                if attempt >= options.retry:
                    raise
                delay_ms = min(options.retry_delay_ms * (2 ** attempt), MAX_RETRY_DELAY_MS)
                attempt += 1
                logger.info(
                    "Retrying %s in %.0fms (attempt %d of %d): %s",
                    key, delay_ms, attempt, options.retry, error.message
                )
                await asyncio.sleep(delay_ms / 1000.0)

    def _on_done(self, key: QueryKey, sequence: int, task: "asyncio.Task[Any]") -> None:
        """Drop in-flight record and consume background failures."""
        current = self._in_flight.get(key)
        if current is not None and current.sequence == sequence:
            del self._in_flight[key]

        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Fetch failed for %s: %s", key, error)
