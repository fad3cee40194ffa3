"""
Worker pool tracking.

Polls the worker inventory and keeps the latest snapshot of live worker
ids. The snapshot is an immutable tuple replaced wholesale on every
successful refresh, so readers on the event loop never observe a partially
updated pool.
"""

import logging
from collections.abc import Iterable, Sequence

from core.errors import TransientQueryFailure, wrap_exception
from core.logging.utilities import log_exception
from feedrouter import metrics
from feedrouter.models import LifecycleState, ManagedWorker
from feedrouter.protocols import WorkerInventory

logger = logging.getLogger(__name__)

DEFAULT_ASSIGNABLE_STATES = frozenset({LifecycleState.RUNNING, LifecycleState.CREATING})


def live_worker_ids(
    workers: Sequence[ManagedWorker] | None,
    assignable_states: Iterable[LifecycleState] = DEFAULT_ASSIGNABLE_STATES,
) -> tuple[str, ...]:
    """Compute a pool snapshot from an inventory manifest.

    Keeps workers in an assignable state, in manifest order, dropping
    duplicate ids. A missing manifest yields the empty pool.
    """
    if not workers:
        return ()

    states = frozenset(assignable_states)
    seen: set[str] = set()
    pool: list[str] = []
    for worker in workers:
        if worker.lifecycle_state not in states:
            continue
        worker_id = worker.worker_id
        if worker_id and worker_id not in seen:
            seen.add(worker_id)
            pool.append(worker_id)
    return tuple(pool)


class WorkerPoolTracker:
    """Owns the live-pool snapshot.

    ``refresh()`` never raises: on inventory failure the previous snapshot
    is kept and the failure is logged, and the next scheduled refresh tries
    again.
    """

    def __init__(
        self,
        inventory: WorkerInventory,
        assignable_states: Iterable[LifecycleState | str] = DEFAULT_ASSIGNABLE_STATES,
    ):
        self._inventory = inventory
        self._assignable_states = frozenset(LifecycleState.parse(s) for s in assignable_states)
        self._snapshot: tuple[str, ...] = ()
        self._refreshed = False

    @property
    def has_refreshed(self) -> bool:
        """True once at least one refresh succeeded."""
        return self._refreshed

    def current_pool(self) -> tuple[str, ...]:
        return self._snapshot

    async def refresh(self) -> None:
        try:
            workers = await self._inventory.list_managed_workers()
        except Exception as e:
            error = wrap_exception(e, TransientQueryFailure, {"source": "inventory"})
            metrics.query_failures_total.labels(source="inventory").inc()
            log_exception(
                logger,
                error,
                "Worker inventory query failed, keeping previous pool",
                level=logging.WARNING,
                include_traceback=False,
                pool_size=len(self._snapshot),
            )
            return

        if workers is None:
            logger.info("Worker inventory returned no manifest, pool is empty")

        new_pool = live_worker_ids(workers, self._assignable_states)
        previous = self._snapshot
        self._snapshot = new_pool
        self._refreshed = True
        metrics.pool_size.set(len(new_pool))

        if new_pool != previous:
            added = [w for w in new_pool if w not in previous]
            removed = [w for w in previous if w not in new_pool]
            logger.info(
                "Worker pool changed",
                extra={
                    "pool_size": len(new_pool),
                    "previous_pool_size": len(previous),
                    "workers_added": added,
                    "workers_removed": removed,
                },
            )
        else:
            logger.debug("Worker pool unchanged", extra={"pool_size": len(new_pool)})
