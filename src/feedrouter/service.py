"""
Router service wiring.

Builds the components around injected collaborators and drives the four
periodic loops on one event loop:

    pool refresh  -> WorkerPoolTracker.refresh
    term poll     -> TermWatcher.poll (-> SubscriptionManager.rotate)
    reclaim       -> LostWorkReclaimer.reclaim
    stats         -> StatsReporter.report

The pool is refreshed and the terms polled once eagerly before the loops
start, so no event is dispatched against a never-refreshed pool.
"""

import asyncio
import logging

from config.config import RouterConfig
from feedrouter.dispatcher import Dispatcher
from feedrouter.health import HealthCheckServer
from feedrouter.pool import WorkerPoolTracker
from feedrouter.protocols import EventStore, FeedSource, TermSource, WorkerInventory
from feedrouter.reclaimer import LostWorkReclaimer
from feedrouter.scheduler import PeriodicTask
from feedrouter.stats import IngestCounter, StatsReporter
from feedrouter.subscription import SubscriptionManager
from feedrouter.terms import TermWatcher

logger = logging.getLogger(__name__)


class FeedRouterService:
    def __init__(
        self,
        config: RouterConfig,
        term_source: TermSource,
        inventory: WorkerInventory,
        feed: FeedSource,
        store: EventStore,
        health_server: HealthCheckServer | None = None,
    ):
        self.config = config
        self.health_server = health_server

        self.tracker = WorkerPoolTracker(inventory, config.assignable_states)
        self.counter = IngestCounter()
        self.dispatcher = Dispatcher(
            self.tracker, store, self.counter, sentinel_worker=config.sentinel_worker
        )
        self.subscriptions = SubscriptionManager(feed, self.dispatcher)
        self.term_watcher = TermWatcher(term_source, self.subscriptions)
        self.reclaimer = LostWorkReclaimer(self.tracker, store, self.dispatcher)
        self.stats_reporter = StatsReporter(
            store,
            self.counter,
            pool_size=lambda: len(self.tracker.current_pool()),
            subscription_state=lambda: self.subscriptions.state.value,
        )

        self.tasks = [
            PeriodicTask("pool", config.worker_refresh_seconds, self._refresh_pool),
            PeriodicTask("terms", config.term_poll_seconds, self._poll_terms),
            PeriodicTask("reclaim", config.reclaim_seconds, self.reclaimer.reclaim),
            PeriodicTask("stats", config.stats_seconds, self.stats_reporter.report),
        ]
        self._started = False

    @property
    def is_running(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._started:
            logger.warning("Router already started")
            return

        if self.health_server is not None:
            await self.health_server.start()

        await self._refresh_pool()
        await self._poll_terms()

        for task in self.tasks:
            task.start()
        self._started = True

        logger.info(
            "Router started",
            extra={
                "pool_size": len(self.tracker.current_pool()),
                "subscription_state": self.subscriptions.state.value,
                "terms": list(self.subscriptions.applied_terms),
            },
        )

    async def stop(self) -> None:
        """Cancel the loops and close the subscription.

        Calls already in flight on collaborators are not interrupted beyond
        the cancellation of their owning loop.
        """
        for task in self.tasks:
            await task.stop()

        await self.subscriptions.close()
        self._update_health()

        if self.health_server is not None:
            await self.health_server.stop()

        self._started = False
        logger.info(
            "Router stopped",
            extra={"events_ingested": self.counter.total},
        )

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Start, wait for ``shutdown_event``, stop."""
        await self.start()
        try:
            await shutdown_event.wait()
            logger.info("Shutdown requested")
        finally:
            await self.stop()

    async def _refresh_pool(self) -> None:
        await self.tracker.refresh()
        self._update_health()

    async def _poll_terms(self) -> None:
        await self.term_watcher.poll()
        self._update_health()

    def _update_health(self) -> None:
        if self.health_server is None:
            return
        self.health_server.set_ready(
            pool_refreshed=self.tracker.has_refreshed,
            subscribed=self.subscriptions.is_subscribed,
        )
