"""Query cache service.

ONLY cached state ownership - in-memory store of query entries keyed by
query key, with freshness bookkeeping, observer tracking and atomic
entry replacement.

Following maximum separation architecture - one file = one purpose.
"""

import asyncio
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from ...core.entities.query_entry import QueryEntry
from ...core.protocols.observer import ObserverCountListener, QueryObserver, Unsubscribe
from ...core.value_objects.query_key import KeyLike, QueryKey
from ...core.value_objects.query_options import QueryOptions
from ...core.value_objects.query_status import QueryStatus
from .....utils.clock import Clock, monotonic_ms

logger = logging.getLogger(__name__)


class QueryCache:
    """In-memory query cache.

    Features:
    - Atomic entry replacement (entries are immutable snapshots)
    - Synchronous observer notification after every change
    - Observer counting with count-change listeners
    - Prefix-based staleness marking and removal
    - Optional garbage collection of unobserved entries

    The cache is the single serialization point for entry state. All writes
    go through one re-entrant lock and observers are notified once the lock
    is released.
    """

    def __init__(self, clock: Optional[Clock] = None, gc_time_ms: Optional[float] = None):
        """Initialize query cache.

        Args:
            clock: Millisecond clock, monotonic by default
            gc_time_ms: Default eviction delay for unobserved entries, None never evicts
        """
        self._clock = clock or monotonic_ms
        self._gc_time_ms = gc_time_ms
        self._entries: Dict[QueryKey, QueryEntry] = {}
        self._observers: Dict[QueryKey, List[QueryObserver]] = defaultdict(list)
        self._gc_windows: Dict[QueryKey, Optional[float]] = {}
        self._gc_handles: Dict[QueryKey, asyncio.TimerHandle] = {}
        self._count_listeners: List[ObserverCountListener] = []
        self._lock = threading.RLock()

    def now(self) -> float:
        """Current cache time in milliseconds."""
        return self._clock()

    # Reads

    def get(self, key: KeyLike) -> Optional[QueryEntry]:
        """Get entry by key without side effects."""
        query_key = QueryKey.coerce(key)
        with self._lock:
            return self._entries.get(query_key)

    def find_all(self, target: KeyLike) -> List[QueryEntry]:
        """Get every entry whose key equals or extends target."""
        target_key = QueryKey.coerce(target)
        with self._lock:
            return [entry for key, entry in self._entries.items() if key.matches(target_key)]

    def keys(self) -> List[QueryKey]:
        """Get all cached keys."""
        with self._lock:
            return list(self._entries.keys())

    def is_stale(self, key: KeyLike) -> bool:
        """Check if entry is stale, absent entries count as stale."""
        entry = self.get(key)
        return entry is None or entry.is_stale(self.now())

    def __contains__(self, key: KeyLike) -> bool:
        query_key = QueryKey.coerce(key)
        with self._lock:
            return query_key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # Entry lifecycle

    def ensure(self, key: KeyLike, options: Optional[QueryOptions] = None) -> QueryEntry:
        """Get existing entry or create one with the given options."""
        query_key = QueryKey.coerce(key)
        with self._lock:
            entry = self._entries.get(query_key)
            if entry is None:
                entry = QueryEntry.create(query_key, options)
                self._entries[query_key] = entry
                if options is not None:
                    self._gc_windows[query_key] = options.gc_time_ms
                logger.debug("Query entry created: %s", query_key)
            return entry

    def configure(self, key: KeyLike, options: QueryOptions) -> QueryEntry:
        """Apply per-query options to an entry, creating it if needed."""
        query_key = QueryKey.coerce(key)
        with self._lock:
            self.ensure(query_key, options)
            self._gc_windows[query_key] = options.gc_time_ms
            return self._replace(
                query_key,
                stale_time_ms=options.stale_time_ms,
                refetch_interval_ms=options.refetch_interval_ms,
            )

    def set(self, key: KeyLike, data: Any) -> QueryEntry:
        """Store fetched or confirmed data as the fresh, successful value."""
        if data is None:
            raise ValueError("Cannot store None as query data")
        query_key = QueryKey.coerce(key)
        with self._lock:
            self.ensure(query_key)
            entry = self._replace(
                query_key,
                data=data,
                status=QueryStatus.SUCCESS,
                error=None,
                last_updated_at=self.now(),
                is_invalidated=False,
                is_optimistic=False,
            )
        self._notify(entry)
        return entry

    def set_optimistic(self, key: KeyLike, data: Any, provisional: bool = True) -> Any:
        """Write data without touching status or freshness bookkeeping.

        Args:
            key: Query key to write
            data: Provisional value (or snapshot value on rollback)
            provisional: False when restoring a pre-mutation snapshot

        Returns:
            The value present immediately before the write
        """
        query_key = QueryKey.coerce(key)
        with self._lock:
            previous = self.ensure(query_key)
            status = previous.status
            error = previous.error
            if data is None and status == QueryStatus.SUCCESS:
                # Restoring "no data" on a key that was idle before the mutation
                status = QueryStatus.IDLE
            entry = self._replace(
                query_key,
                data=data,
                status=status,
                error=error,
                is_optimistic=provisional,
            )
        logger.debug("Optimistic write on %s (provisional=%s)", query_key, provisional)
        self._notify(entry)
        return previous.data

    def confirm(self, key: KeyLike) -> Optional[QueryEntry]:
        """Mark a provisional value as confirmed by the server."""
        query_key = QueryKey.coerce(key)
        with self._lock:
            if query_key not in self._entries or not self._entries[query_key].is_optimistic:
                return self._entries.get(query_key)
            entry = self._replace(query_key, is_optimistic=False)
        self._notify(entry)
        return entry

    def set_loading(self, key: KeyLike) -> QueryEntry:
        """Mark a fetch as in flight, keeping previous data."""
        query_key = QueryKey.coerce(key)
        with self._lock:
            self.ensure(query_key)
            entry = self._replace(query_key, status=QueryStatus.LOADING, error=None)
        self._notify(entry)
        return entry

    def set_error(self, key: KeyLike, error: BaseException) -> QueryEntry:
        """Record a failed fetch, keeping last-known-good data."""
        query_key = QueryKey.coerce(key)
        with self._lock:
            self.ensure(query_key)
            entry = self._replace(query_key, status=QueryStatus.ERROR, error=error)
        self._notify(entry)
        return entry

    def mark_stale(self, target: KeyLike) -> List[QueryKey]:
        """Flag every entry matching target as stale.

        Returns:
            Keys of the flagged entries
        """
        target_key = QueryKey.coerce(target)
        changed: List[QueryEntry] = []
        with self._lock:
            for key in [key for key in self._entries if key.matches(target_key)]:
                changed.append(self._replace(key, is_invalidated=True))
        for entry in changed:
            self._notify(entry)
        return [entry.key for entry in changed]

    def remove(self, target: KeyLike) -> int:
        """Drop every entry matching target.

        Unobserved entries are deleted. Observed entries are reset to an
        idle entry without data that keeps its options and observer count.

        Returns:
            Number of removed or reset entries
        """
        target_key = QueryKey.coerce(target)
        reset: List[QueryEntry] = []
        with self._lock:
            matched = [key for key in self._entries if key.matches(target_key)]
            for key in matched:
                if self._entries[key].observer_count > 0:
                    reset.append(self._reset(key))
                else:
                    self._drop(key)
        for entry in reset:
            self._notify(entry)
        if matched:
            logger.debug("Removed %d query entries matching %s", len(matched), target_key)
        return len(matched)

    def restore_status(
        self,
        key: KeyLike,
        status: QueryStatus,
        error: Optional[BaseException] = None
    ) -> Optional[QueryEntry]:
        """Return a loading entry to the status it had before its fetch started."""
        query_key = QueryKey.coerce(key)
        with self._lock:
            entry = self._entries.get(query_key)
            if entry is None or entry.status != QueryStatus.LOADING:
                return entry
            if status == QueryStatus.LOADING or (status == QueryStatus.SUCCESS and entry.data is None):
                status = QueryStatus.IDLE
            if status == QueryStatus.ERROR and error is None:
                status = QueryStatus.IDLE
            if status != QueryStatus.ERROR:
                error = None
            entry = self._replace(query_key, status=status, error=error)
        self._notify(entry)
        return entry

    def clear(self) -> None:
        """Drop all entries, observers and pending collections."""
        with self._lock:
            for handle in self._gc_handles.values():
                handle.cancel()
            self._gc_handles.clear()
            self._gc_windows.clear()
            self._entries.clear()
            self._observers.clear()

    # Observers

    def subscribe(self, key: KeyLike, callback: QueryObserver) -> Unsubscribe:
        """Register an observer for key.

        Increments the observer count; the callback is invoked synchronously
        with the new entry on every subsequent change.

        Returns:
            Function that removes the observer (idempotent)
        """
        query_key = QueryKey.coerce(key)
        with self._lock:
            self.ensure(query_key)
            self._cancel_collection(query_key)
            self._observers[query_key].append(callback)
            entry = self._replace(
                query_key, observer_count=self._entries[query_key].observer_count + 1
            )

        self._publish_count(entry)

        active = True

        def unsubscribe() -> None:
            nonlocal active
            if not active:
                return
            active = False
            self._unsubscribe(query_key, callback)

        return unsubscribe

    def observer_count(self, key: KeyLike) -> int:
        """Get number of observers of key."""
        entry = self.get(key)
        return entry.observer_count if entry else 0

    def add_observer_listener(self, listener: ObserverCountListener) -> Callable[[], None]:
        """Register listener for observer-count changes.

        Returns:
            Function that removes the listener
        """
        self._count_listeners.append(listener)

        def remove() -> None:
            if listener in self._count_listeners:
                self._count_listeners.remove(listener)

        return remove

    def _unsubscribe(self, key: QueryKey, callback: QueryObserver) -> None:
        """Remove observer and decrement the count."""
        with self._lock:
            callbacks = self._observers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if key not in self._entries:
                return
            current = self._entries[key].observer_count
            entry = self._replace(key, observer_count=max(current - 1, 0))
            if entry.observer_count == 0:
                self._schedule_collection(key)

        self._publish_count(entry)

    # Internals

    def _replace(self, key: QueryKey, **changes: Any) -> QueryEntry:
        """Swap entry for an updated copy. Caller holds the lock."""
        entry = self._entries[key].evolve(**changes)
        self._entries[key] = entry
        return entry

    def _reset(self, key: QueryKey) -> QueryEntry:
        """Swap entry for an idle one keeping options and observers. Caller holds the lock."""
        current = self._entries[key]
        entry = QueryEntry(
            key=key,
            stale_time_ms=current.stale_time_ms,
            refetch_interval_ms=current.refetch_interval_ms,
            observer_count=current.observer_count,
        )
        self._entries[key] = entry
        return entry

    def _drop(self, key: QueryKey) -> None:
        """Remove entry and its collection state. Caller holds the lock."""
        self._cancel_collection(key)
        self._entries.pop(key, None)
        self._gc_windows.pop(key, None)
        if not self._observers.get(key):
            self._observers.pop(key, None)

    def _notify(self, entry: QueryEntry) -> None:
        """Invoke observers of entry with the new snapshot."""
        for callback in list(self._observers.get(entry.key, ())):
            try:
                callback(entry)
            except Exception:
                logger.exception("Query observer failed for %s", entry.key)

    def _publish_count(self, entry: QueryEntry) -> None:
        """Notify count listeners of the new observer count."""
        for listener in list(self._count_listeners):
            try:
                listener(entry.key, entry.observer_count)
            except Exception:
                logger.exception("Observer count listener failed for %s", entry.key)

    def _schedule_collection(self, key: QueryKey) -> None:
        """Arm eviction of an unobserved entry. Caller holds the lock."""
        window = self._gc_windows.get(key, self._gc_time_ms)
        if window is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, entry %s kept", key)
            return
        self._cancel_collection(key)
        self._gc_handles[key] = loop.call_later(window / 1000.0, self._collect, key)

    def _cancel_collection(self, key: QueryKey) -> None:
        """Disarm pending eviction. Caller holds the lock."""
        handle = self._gc_handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    def _collect(self, key: QueryKey) -> None:
        """Evict entry if it is still unobserved."""
        with self._lock:
            self._gc_handles.pop(key, None)
            entry = self._entries.get(key)
            if entry is None or entry.observer_count > 0:
                return
            self._drop(key)
        logger.debug("Garbage collected query entry %s", key)
