"""Invalidation bus service.

ONLY invalidation fan-out - flags matching entries stale and triggers
eager refetches of the observed ones.

Following maximum separation architecture - one file = one purpose.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List

from ...core.value_objects.query_key import KeyLike, QueryKey
from .query_cache import QueryCache
from .query_executor import QueryExecutor

logger = logging.getLogger(__name__)

# Invoked with the invalidation target and the keys it flagged
InvalidationListener = Callable[[QueryKey, List[QueryKey]], None]


@dataclass
class InvalidationStats:
    """Invalidation counters for monitoring."""

    total_invalidations: int = 0
    total_keys_invalidated: int = 0
    eager_refetches: int = 0

    def reset(self) -> None:
        """Reset all counters."""
        self.total_invalidations = 0
        self.total_keys_invalidated = 0
        self.eager_refetches = 0


class InvalidationBus:
    """Prefix invalidation with eager refresh of observed keys.

    Unobserved matches are only flagged; they refresh on their next
    subscription.
    """

    def __init__(self, cache: QueryCache, executor: QueryExecutor):
        """Initialize invalidation bus.

        Args:
            cache: Query cache holding the entries
            executor: Executor used for eager refetches
        """
        self._cache = cache
        self._executor = executor
        self._listeners: List[InvalidationListener] = []
        self.stats = InvalidationStats()

    def mark_stale(self, target: KeyLike) -> List[QueryKey]:
        """Invalidate every entry whose key equals or extends target.

        Args:
            target: Exact key or key prefix

        Returns:
            Keys of the invalidated entries
        """
        target_key = QueryKey.coerce(target)
        keys = self._cache.mark_stale(target_key)

        self.stats.total_invalidations += 1
        self.stats.total_keys_invalidated += len(keys)
        logger.info("Invalidated %d queries matching %s", len(keys), target_key)

        observed = [key for key in keys if self._cache.observer_count(key) > 0]
        if observed:
            self._refetch(observed)

        for listener in list(self._listeners):
            try:
                listener(target_key, keys)
            except Exception:
                logger.exception("Invalidation listener failed for %s", target_key)

        return keys

    def add_listener(self, listener: InvalidationListener) -> Callable[[], None]:
        """Register invalidation listener.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _refetch(self, keys: List[QueryKey]) -> None:
        """Start eager refetches of observed keys."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, eager refetch of %d queries skipped", len(keys))
            return

        for key in keys:
            if self._executor.refetch(key) is not None:
                self.stats.eager_refetches += 1
