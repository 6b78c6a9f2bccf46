"""Refetch scheduler service.

ONLY background polling - arms one recurring refetch task per observed key
that declares a refetch interval and cancels it when the key loses its
last observer.

Following maximum separation architecture - one file = one purpose.
"""

import asyncio
import logging
from typing import Dict, List

from ...core.value_objects.query_key import KeyLike, QueryKey
from .query_cache import QueryCache
from .query_executor import QueryExecutor

logger = logging.getLogger(__name__)


class RefetchScheduler:
    """Observer-gated polling scheduler.

    Timers follow observer counts published by the cache: a key is polled
    only while at least one observer watches it and its entry carries a
    refetch interval.
    """

    def __init__(self, cache: QueryCache, executor: QueryExecutor):
        """Initialize scheduler and start listening to observer counts.

        Args:
            cache: Query cache publishing observer counts
            executor: Executor performing the refetches
        """
        self._cache = cache
        self._executor = executor
        self._timers: Dict[QueryKey, "asyncio.Task[None]"] = {}
        self._remove_listener = cache.add_observer_listener(self._on_observer_count)
        self._closed = False

    def is_armed(self, key: KeyLike) -> bool:
        """Check if key has a live polling timer."""
        task = self._timers.get(QueryKey.coerce(key))
        return task is not None and not task.done()

    def armed_keys(self) -> List[QueryKey]:
        """Get keys with live polling timers."""
        return [key for key, task in self._timers.items() if not task.done()]

    def sync(self, key: KeyLike) -> None:
        """Re-evaluate the timer of key against its current entry."""
        query_key = QueryKey.coerce(key)
        self._on_observer_count(query_key, self._cache.observer_count(query_key))

    async def shutdown(self) -> None:
        """Cancel every timer and stop listening to the cache."""
        self._closed = True
        self._remove_listener()
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug("Refetch scheduler stopped (%d timers cancelled)", len(tasks))

    def _on_observer_count(self, key: QueryKey, count: int) -> None:
        """Arm or disarm the timer of key."""
        if self._closed:
            return

        entry = self._cache.get(key)
        interval = entry.refetch_interval_ms if entry else None

        if count > 0 and interval:
            self._arm(key, interval)
        else:
            self._disarm(key)

    def _arm(self, key: QueryKey, interval_ms: float) -> None:
        """Start polling key unless already polling."""
        if self.is_armed(key):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, polling of %s not armed", key)
            return
        self._timers[key] = loop.create_task(self._poll(key, interval_ms))
        logger.debug("Polling %s every %.0fms", key, interval_ms)

    def _disarm(self, key: QueryKey) -> None:
        """Stop polling key."""
        task = self._timers.pop(key, None)
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Stopped polling %s", key)

    async def _poll(self, key: QueryKey, interval_ms: float) -> None:
        """Refetch key once per interval until cancelled."""
        while True:
            await asyncio.sleep(interval_ms / 1000.0)
            if self._cache.observer_count(key) == 0:
                return
            try:
                # Disarming must not cancel a fetch shared with other awaiters
                await asyncio.shield(self._executor.fetch(key))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Failure is already on the entry, keep polling
                logger.debug("Polling refetch of %s failed: %s", key, e)
