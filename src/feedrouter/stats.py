"""
Ingest throughput counting and periodic stat reporting.

The dispatcher bumps an IngestCounter for every newly stored event; the
StatsReporter drains the counter's window once per interval, turns it into
an events/second rate and persists a Stat record.
"""

import logging
import math
import time
from collections.abc import Callable
from datetime import UTC, datetime

from core.errors import PersistFailure, wrap_exception
from core.logging.utilities import format_stats_line, log_exception
from feedrouter import metrics
from feedrouter.models import Stat
from feedrouter.protocols import EventStore

logger = logging.getLogger(__name__)


class IngestCounter:
    """Counts newly stored events, both lifetime and per reporting window."""

    def __init__(self) -> None:
        self._total = 0
        self._window = 0

    @property
    def total(self) -> int:
        return self._total

    @property
    def window(self) -> int:
        return self._window

    def increment(self) -> None:
        self._total += 1
        self._window += 1

    def drain_window(self) -> int:
        """Return the current window count and start a new window."""
        count, self._window = self._window, 0
        return count


def compute_rate(count: int, elapsed_seconds: float) -> float:
    """Events per second, rounded to one decimal.

    A zero or negative elapsed time, or any non-finite result, reports 0.0.

        >>> compute_rate(25, 10.0)
        2.5
    """
    if elapsed_seconds <= 0:
        return 0.0
    rate = count / elapsed_seconds
    if not math.isfinite(rate) or rate < 0:
        return 0.0
    return round(rate, 1)


class StatsReporter:
    """Persists one Stat per interval.

    ``clock`` measures the window (monotonic); ``now`` stamps the record.
    The count is drained and the next window opened in one step before the
    write, so events arriving during a slow write belong to the next window
    along with the time they arrived in. A failed write loses that window's
    sample.
    """

    def __init__(
        self,
        store: EventStore,
        counter: IngestCounter,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
        pool_size: Callable[[], int] | None = None,
        subscription_state: Callable[[], str] | None = None,
    ):
        self._store = store
        self._counter = counter
        self._clock = clock
        self._now = now
        self._pool_size = pool_size
        self._subscription_state = subscription_state
        self._window_start = clock()

    async def report(self) -> Stat:
        now = self._clock()
        elapsed = now - self._window_start
        count = self._counter.drain_window()
        self._window_start = now
        rate = compute_rate(count, elapsed)
        stat = Stat(timestamp=self._now(), events_per_second=rate)
        metrics.events_per_second.set(rate)

        try:
            await self._store.record_stat(stat)
        except Exception as e:
            error = wrap_exception(e, PersistFailure, {"operation": "record_stat"})
            metrics.persist_failures_total.labels(operation="record_stat").inc()
            log_exception(
                logger,
                error,
                "Could not persist throughput stat",
                level=logging.WARNING,
                include_traceback=False,
                events_per_second=rate,
            )

        pool_size = self._pool_size() if self._pool_size else 0
        state = self._subscription_state() if self._subscription_state else "UNKNOWN"
        logger.info(
            format_stats_line(self._counter.total, rate, pool_size, state),
            extra={
                "events_ingested": self._counter.total,
                "events_per_second": rate,
                "window_seconds": round(elapsed, 3),
                "pool_size": pool_size,
                "subscription_state": state,
            },
        )
        return stat
