"""
Event assignment.

Every event the feed delivers, and every orphaned event the reclaimer hands
back, goes through Dispatcher.assign: pick a live worker with the selection
policy, record the assignment in the event store, return the worker id.

Selection happens synchronously against the current pool snapshot before
the first await, so two assignments on the event loop can never read the
same cursor value.
"""

import logging
from collections.abc import Sequence
from typing import Protocol

from core.errors import PersistFailure, wrap_exception
from core.logging.utilities import log_exception
from feedrouter import metrics
from feedrouter.models import DEFAULT_SENTINEL_WORKER, Event
from feedrouter.pool import WorkerPoolTracker
from feedrouter.protocols import EventStore
from feedrouter.stats import IngestCounter

logger = logging.getLogger(__name__)


class SelectionPolicy(Protocol):
    def select(self, pool: Sequence[str]) -> str | None:
        """Pick a worker from a non-empty pool; None for an empty pool."""
        ...


class RoundRobinSelector:
    """Cycles through the pool in snapshot order.

    The cursor survives pool changes: it is taken modulo the current pool
    size, so a shrinking pool never indexes out of range and a growing pool
    picks up new workers on the next lap.
    """

    def __init__(self) -> None:
        self._cursor = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    def select(self, pool: Sequence[str]) -> str | None:
        if not pool:
            return None
        size = len(pool)
        worker_id = pool[self._cursor % size]
        self._cursor = (self._cursor + 1) % size
        return worker_id


class Dispatcher:
    """Assigns events to workers and records the assignment."""

    def __init__(
        self,
        tracker: WorkerPoolTracker,
        store: EventStore,
        counter: IngestCounter,
        sentinel_worker: str = DEFAULT_SENTINEL_WORKER,
        policy: SelectionPolicy | None = None,
    ):
        self._tracker = tracker
        self._store = store
        self._counter = counter
        self._sentinel_worker = sentinel_worker
        self._policy = policy if policy is not None else RoundRobinSelector()

    @property
    def sentinel_worker(self) -> str:
        return self._sentinel_worker

    def select_worker(self) -> str:
        """Choose the worker for the next assignment, without awaiting."""
        worker_id = self._policy.select(self._tracker.current_pool())
        if worker_id is None:
            metrics.sentinel_assignments_total.inc()
            return self._sentinel_worker
        return worker_id

    async def assign(self, event: Event, reclaimed: bool = False) -> str:
        """Assign ``event`` and persist the assignment.

        Feed events are always inserted, whatever ``assigned_worker`` they
        arrive with. Reclaimed events (``reclaimed=True``) already exist in
        the store and get their assignment overwritten. A store failure is
        logged and the event dropped; the chosen worker id is returned
        either way.
        """
        worker_id = self.select_worker()
        previous_worker = event.assigned_worker if reclaimed else None
        if reclaimed:
            operation = "update_assignment"
            kind = "reclaimed"
        else:
            operation = "insert"
            kind = "new"

        try:
            if reclaimed:
                await self._store.update_assignment(event.event_id, worker_id)
            else:
                await self._store.insert(event.model_copy(update={"assigned_worker": worker_id}))
        except Exception as e:
            error = wrap_exception(e, PersistFailure, {"operation": operation})
            metrics.persist_failures_total.labels(operation=operation).inc()
            log_exception(
                logger,
                error,
                "Could not persist event assignment, dropping event",
                level=logging.WARNING,
                include_traceback=False,
                event_id=event.event_id,
                assigned_worker=worker_id,
                operation=operation,
            )
            return worker_id

        if not reclaimed:
            self._counter.increment()
        metrics.events_assigned_total.labels(kind=kind).inc()
        logger.debug(
            "Event assigned",
            extra={
                "event_id": event.event_id,
                "assigned_worker": worker_id,
                "previous_worker": previous_worker,
            },
        )
        return worker_id
