"""Fixed-interval background loops."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from core.logging.context_managers import LogContext
from core.logging.setup import generate_cycle_id
from core.logging.utilities import log_exception

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs an async callable every ``interval_seconds`` on the event loop.

    The first run happens one interval after start(); callers that need an
    eager first run invoke the callable themselves before starting the loop.
    Each run gets its own cycle id in the log context. Exceptions from a run
    are logged and the loop keeps going.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        fn: Callable[[], Awaitable[Any]],
    ):
        if interval_seconds <= 0:
            raise ValueError(f"{name}: interval must be > 0, got {interval_seconds}")
        self.name = name
        self.interval_seconds = interval_seconds
        self._fn = fn
        self._task: asyncio.Task | None = None
        self._cycle_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    def start(self) -> None:
        if self._task is not None:
            logger.warning(f"Periodic task {self.name} already running")
            return

        self._task = asyncio.create_task(self._run(), name=f"feedrouter-{self.name}")
        logger.debug(
            f"Started periodic task {self.name}",
            extra={"interval_seconds": self.interval_seconds},
        )

    async def stop(self) -> None:
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def run_once(self) -> None:
        """Run the callable once under a fresh log context, logging failures."""
        self._cycle_count += 1
        with LogContext(cycle_id=generate_cycle_id(), stage=self.name):
            try:
                await self._fn()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log_exception(
                    logger,
                    e,
                    f"Periodic task {self.name} failed",
                    cycle=self._cycle_count,
                )

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
