import asyncio
from unittest.mock import MagicMock

import pytest

from feedrouter.adapters.dummy_feed import DummyFeedSource
from feedrouter.protocols import FeedHandle, FeedSource


class TestDummyFeedSource:

    def test_interval_from_rate(self):
        assert DummyFeedSource(events_per_minute=120).interval_seconds == 0.5

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            DummyFeedSource(events_per_minute=0)

    def test_satisfies_protocol(self):
        assert isinstance(DummyFeedSource(), FeedSource)

    async def test_subscribe_requires_terms(self):
        async def on_event(event):
            pass

        with pytest.raises(ValueError):
            await DummyFeedSource().subscribe((), on_event)

    async def test_emits_events_mentioning_terms(self):
        received = []
        statuses = MagicMock()

        async def on_event(event):
            received.append(event)

        feed = DummyFeedSource(events_per_minute=6000, language="en", seed=1)
        handle = await feed.subscribe(("clinton", "obama"), on_event, statuses)
        assert isinstance(handle, FeedHandle)

        await asyncio.sleep(0.1)
        await handle.stop()

        assert received
        for event in received:
            assert event.metadata["matched_term"] in ("clinton", "obama")
            assert event.text.endswith(event.metadata["matched_term"])
            assert event.metadata["lang"] == "en"
            assert event.assigned_worker is None
        assert len({e.event_id for e in received}) == len(received)

        status_names = [c.args[0] for c in statuses.call_args_list]
        assert status_names[0] == "connect"
        assert "connected" in status_names
        assert status_names[-1] == "disconnect"

    async def test_no_events_after_stop(self):
        received = []

        async def on_event(event):
            received.append(event)

        handle = await DummyFeedSource(events_per_minute=6000).subscribe(("a",), on_event)
        await asyncio.sleep(0.05)
        await handle.stop()
        count = len(received)

        await asyncio.sleep(0.05)
        assert len(received) == count
        assert handle.is_running is False

    async def test_callback_errors_do_not_stop_feed(self, caplog):
        calls = 0

        async def on_event(event):
            nonlocal calls
            calls += 1
            raise RuntimeError("store down")

        handle = await DummyFeedSource(events_per_minute=6000).subscribe(("a",), on_event)
        await asyncio.sleep(0.1)
        await handle.stop()

        assert calls >= 2
        assert "Event callback failed" in caplog.text

    async def test_stop_waits_for_event_being_delivered(self):
        entered = asyncio.Event()
        release = asyncio.Event()
        stored = []

        async def on_event(event):
            entered.set()
            await release.wait()
            stored.append(event)

        handle = await DummyFeedSource(events_per_minute=6000).subscribe(("a",), on_event)
        await asyncio.wait_for(entered.wait(), timeout=1)

        stopping = asyncio.create_task(handle.stop())
        await asyncio.sleep(0.02)
        assert not stopping.done()

        release.set()
        await asyncio.wait_for(stopping, timeout=1)

        assert len(stored) == 1
        assert handle.events_emitted == 1
        assert handle.is_running is False
