"""
Lost-work reclamation.

Events assigned to a worker that has left the pool would never be
processed. Each reclaim pass finds them and sends them back through the
dispatcher. Passes are skipped while the pool is empty: reassigning to the
sentinel worker would only move events from one dead owner to another.
"""

import logging

from core.errors import TransientQueryFailure, wrap_exception
from core.logging.utilities import log_exception
from feedrouter import metrics
from feedrouter.dispatcher import Dispatcher
from feedrouter.pool import WorkerPoolTracker
from feedrouter.protocols import EventStore

logger = logging.getLogger(__name__)


class LostWorkReclaimer:
    def __init__(self, tracker: WorkerPoolTracker, store: EventStore, dispatcher: Dispatcher):
        self._tracker = tracker
        self._store = store
        self._dispatcher = dispatcher

    async def reclaim(self) -> int:
        """Reassign every orphaned event; returns how many were handed back."""
        pool = self._tracker.current_pool()
        if not pool:
            logger.debug("Pool is empty, skipping reclaim")
            return 0

        reclaimed = 0
        try:
            async for event in self._store.find_by_assigned_worker_not_in(pool):
                await self._dispatcher.assign(event, reclaimed=True)
                reclaimed += 1
        except Exception as e:
            error = wrap_exception(e, TransientQueryFailure, {"source": "events"})
            metrics.query_failures_total.labels(source="events").inc()
            log_exception(
                logger,
                error,
                "Orphaned event query failed",
                level=logging.WARNING,
                include_traceback=False,
                events_reclaimed=reclaimed,
            )

        if reclaimed:
            metrics.events_reclaimed_total.inc(reclaimed)
            logger.info(
                "Reclaimed orphaned events",
                extra={"events_reclaimed": reclaimed, "pool_size": len(pool)},
            )
        return reclaimed
