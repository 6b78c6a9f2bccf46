"""Mutation controller service.

ONLY write orchestration - runs mutations through the optimistic update,
rollback and settle-invalidation lifecycle.

Following maximum separation architecture - one file = one purpose.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from ...core.entities.mutation_record import MutationRecord
from ...core.protocols.transport import Transport
from ...core.value_objects.query_key import KeyLike, QueryKey
from ...core.value_objects.query_status import MutationStatus
from ..commands.mutation_descriptor import (
    BulkMutationResult,
    MutationDescriptor,
    OptimisticUpdate,
    PreparedMutation,
)
from .invalidation_bus import InvalidationBus
from .query_cache import QueryCache
from .query_executor import QueryExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptimisticWrite:
    """Optimistic update one mutation applied to one key."""

    record_id: str
    update: OptimisticUpdate
    payload: Dict[str, Any]
    updated_at: Optional[float]


class MutationController:
    """Optimistic mutation orchestrator.

    Lifecycle of one mutation:
    1. pending - validate, supersede in-flight fetches of the target keys,
       snapshot them and write the optimistic values
    2. transport call
    3. success keeps (or canonicalizes) the optimistic values, error
       rebuilds every optimistically written key from the snapshot and the
       later optimistic writes of other mutations
    4. settled - invalidate each declared key once, then re-raise the
       error, if any, to the caller
    """

    def __init__(
        self,
        cache: QueryCache,
        executor: QueryExecutor,
        bus: InvalidationBus,
        transport: Transport
    ):
        """Initialize mutation controller.

        Args:
            cache: Query cache holding the target entries
            executor: Executor whose in-flight fetches get superseded
            bus: Invalidation bus notified on settlement
            transport: Transport passed to mutation functions
        """
        self._cache = cache
        self._executor = executor
        self._bus = bus
        self._transport = transport
        self._pending: Dict[str, MutationRecord] = {}
        self._journal: Dict[QueryKey, List[OptimisticWrite]] = defaultdict(list)

    def pending_mutations(self) -> List[MutationRecord]:
        """Get records of mutations that have not settled yet."""
        return list(self._pending.values())

    def is_mutating(self, key: Optional[KeyLike] = None) -> bool:
        """Check if any mutation (or one targeting key) is in flight."""
        if key is None:
            return bool(self._pending)
        query_key = QueryKey.coerce(key)
        return any(
            record.touches(query_key) or query_key in record.snapshot
            for record in self._pending.values()
        )

    async def mutate(self, descriptor: MutationDescriptor) -> Any:
        """Run one mutation to settlement.

        Args:
            descriptor: Mutation to run

        Returns:
            The mutation function's result

        Raises:
            ValidationError: If the descriptor or payload is malformed (no
                call is made and nothing is written)
            Exception: Whatever the mutation function raised, after rollback
                and settlement
        """
        prepared = descriptor.prepare()

        record = MutationRecord(target_keys=prepared.target_keys, name=descriptor.name)
        record.transition(MutationStatus.PENDING)
        record.started_at = self._cache.now()
        self._pending[record.id] = record

        logger.info("Mutation %s started (%s)", descriptor.name, record.id)

        result: Any = None
        error: Optional[BaseException] = None
        try:
            self._apply_optimistic(record, prepared)
            result = await descriptor.mutation_fn(self._transport, prepared.payload)
        except (Exception, asyncio.CancelledError) as e:
            error = e
            record.error = e
            record.transition(MutationStatus.ERROR)
            self._rollback(record, prepared)
            logger.warning("Mutation %s failed: %s", descriptor.name, e)
            self._run_hook(descriptor.on_error, descriptor.name, e, prepared.payload)
        else:
            record.transition(MutationStatus.SUCCESS)
            self._commit(record, prepared, result)
            logger.info("Mutation %s succeeded", descriptor.name)
            self._run_hook(descriptor.on_success, descriptor.name, result, prepared.payload)
        finally:
            self._settle(record, prepared)
            self._run_hook(descriptor.on_settled, descriptor.name, result, error, prepared.payload)

        if error is not None:
            raise error
        return result

    async def mutate_all(self, descriptors: Sequence[MutationDescriptor]) -> BulkMutationResult:
        """Run mutations concurrently and wait for all of them to settle.

        Returns:
            Aggregate outcome; per-index results and errors
        """
        outcomes = await asyncio.gather(
            *(self.mutate(descriptor) for descriptor in descriptors),
            return_exceptions=True
        )

        bulk = BulkMutationResult(total=len(outcomes))
        for index, outcome in enumerate(outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                bulk.errors[index] = outcome
                bulk.results.append(None)
            else:
                bulk.results.append(outcome)

        logger.info("Bulk mutation finished: %d succeeded, %d failed", bulk.succeeded, bulk.failed)
        return bulk

    # Lifecycle phases

    def _apply_optimistic(self, record: MutationRecord, prepared: PreparedMutation) -> None:
        """Snapshot target keys and write provisional values."""
        update = prepared.descriptor.optimistic_update
        for key in prepared.target_keys:
            self._executor.supersede(key)
            entry = self._cache.ensure(key)
            record.capture(key, entry.data)
            if update is not None and entry.data is not None:
                self._cache.set_optimistic(key, update(entry.data, prepared.payload))
                self._journal[key].append(
                    OptimisticWrite(record.id, update, prepared.payload, entry.last_updated_at)
                )

    def _rollback(self, record: MutationRecord, prepared: PreparedMutation) -> None:
        """Undo the optimistic writes of a failed mutation.

        Each written key is rebuilt from the snapshot with the optimistic
        writes other mutations made after this one re-applied on top. Keys
        that received server data since the write are left alone; the
        settle invalidation reconciles them.
        """
        restored = 0
        for key in prepared.target_keys:
            writes = self._journal.get(key)
            index = _write_index(writes, record.id)
            if index is None:
                continue
            own = writes.pop(index)

            entry = self._cache.get(key)
            if entry is None or entry.last_updated_at != own.updated_at:
                logger.debug("Server data replaced %s during %s, rollback skipped", key, record.name)
                continue

            value = record.snapshot[key]
            try:
                for later in writes[index:]:
                    value = later.update(value, later.payload)
            except Exception:
                logger.exception("Re-applying optimistic updates on %s failed", key)
                value = record.snapshot[key]

            self._cache.set_optimistic(key, value, provisional=self._has_pending_writes(key))
            restored += 1

        if restored:
            logger.debug("Rolled back %d queries for %s", restored, record.name)

    def _commit(self, record: MutationRecord, prepared: PreparedMutation, result: Any) -> None:
        """Confirm provisional values and apply server data."""
        for key in prepared.target_keys:
            if not self._has_pending_writes(key, exclude=record.id):
                self._cache.confirm(key)

        canonical = prepared.descriptor.canonical_update
        if canonical is not None:
            for key, data in (canonical(result) or {}).items():
                if data is not None:
                    self._cache.set(key, data)

        for key in prepared.remove_keys:
            self._cache.remove(key)

        record.discard_snapshot()

    def _settle(self, record: MutationRecord, prepared: PreparedMutation) -> None:
        """Invalidate declared keys and close the record."""
        try:
            for key in prepared.invalidate_keys:
                self._bus.mark_stale(key)
        finally:
            record.transition(MutationStatus.SETTLED)
            record.settled_at = self._cache.now()
            self._pending.pop(record.id, None)
            for key in prepared.target_keys:
                if key in self._journal and not self._has_pending_writes(key):
                    del self._journal[key]

    def _has_pending_writes(self, key: QueryKey, exclude: Optional[str] = None) -> bool:
        """Check if an unsettled mutation other than exclude wrote key optimistically."""
        return any(
            write.record_id in self._pending and write.record_id != exclude
            for write in self._journal.get(key, ())
        )

    def _run_hook(self, hook: Optional[Callable[..., Any]], name: str, *args: Any) -> None:
        """Invoke lifecycle hook, logging its failure."""
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:
            logger.exception("Lifecycle hook of mutation %s failed", name)


def _write_index(writes: Optional[List[OptimisticWrite]], record_id: str) -> Optional[int]:
    """Position of a mutation's write in a key's journal."""
    for index, write in enumerate(writes or ()):
        if write.record_id == record_id:
            return index
    return None
