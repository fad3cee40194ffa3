"""
Synthetic feed for development runs.

Emits one event mentioning a random subscribed term at a fixed rate, and
reports the same status notifications a real streaming client would.
"""

import asyncio
import contextlib
import logging
import random
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from coolname import generate

from feedrouter.models import Event
from feedrouter.protocols import EventCallback, StatusCallback

logger = logging.getLogger(__name__)


class DummyFeedHandle:
    def __init__(
        self,
        terms: Sequence[str],
        on_event: EventCallback,
        on_status: StatusCallback | None,
        interval_seconds: float,
        language: str,
        rng: random.Random,
    ):
        self.terms = tuple(terms)
        self._on_event = on_event
        self._on_status = on_status
        self._interval_seconds = interval_seconds
        self._language = language
        self._rng = rng
        self._task: asyncio.Task | None = None
        self._running = False
        self._delivering = False
        self.events_emitted = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self._notify("connect", {"terms": list(self.terms)})
        self._running = True
        self._task = asyncio.create_task(self._run(), name="dummy-feed")

    async def stop(self) -> None:
        """Stop emitting; an event already handed to the callback is delivered first."""
        if self._task is None:
            return
        self._running = False
        if not self._delivering:
            self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self._notify("disconnect", {"events_emitted": self.events_emitted})

    def make_event(self) -> Event:
        term = self._rng.choice(self.terms)
        words = generate(2)
        return Event(
            event_id=uuid.uuid4().hex,
            text=f"{' '.join(words)} {term}",
            metadata={"lang": self._language, "matched_term": term},
            created_at=datetime.now(UTC),
        )

    async def _run(self) -> None:
        self._notify("connected", {})
        while self._running:
            await asyncio.sleep(self._interval_seconds)
            event = self.make_event()
            self._delivering = True
            try:
                await self._on_event(event)
            except Exception as e:
                logger.warning(
                    "Event callback failed",
                    extra={"event_id": event.event_id, "error": str(e)},
                )
            finally:
                self._delivering = False
            self.events_emitted += 1

    def _notify(self, status: str, details: dict) -> None:
        if self._on_status is not None:
            self._on_status(status, details)


class DummyFeedSource:
    def __init__(
        self,
        events_per_minute: float = 120,
        language: str = "en",
        seed: int | None = None,
    ):
        if events_per_minute <= 0:
            raise ValueError(f"events_per_minute must be > 0, got {events_per_minute}")
        self.interval_seconds = 60.0 / events_per_minute
        self.language = language
        self._rng = random.Random(seed)
        self.handles: list[DummyFeedHandle] = []

    async def subscribe(
        self,
        terms: Sequence[str],
        on_event: EventCallback,
        on_status: StatusCallback | None = None,
    ) -> DummyFeedHandle:
        if not terms:
            raise ValueError("Subscription needs at least one term")
        handle = DummyFeedHandle(
            terms, on_event, on_status, self.interval_seconds, self.language, self._rng
        )
        handle.start()
        self.handles.append(handle)
        return handle
