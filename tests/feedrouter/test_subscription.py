import logging
from unittest.mock import AsyncMock, MagicMock

from prometheus_client import REGISTRY

from feedrouter.models import Event, SubscriptionState
from feedrouter.subscription import SubscriptionManager


def _rotations(outcome):
    return (
        REGISTRY.get_sample_value(
            "feedrouter_subscription_rotations_total", {"outcome": outcome}
        )
        or 0.0
    )


def _make_manager(feed):
    dispatcher = MagicMock()
    dispatcher.assign = AsyncMock(return_value="w1")
    return SubscriptionManager(feed, dispatcher), dispatcher


class TestRotate:

    async def test_first_rotation_subscribes(self, feed, calls):
        manager, _ = _make_manager(feed)

        await manager.rotate(("clinton", "obama"))

        assert calls == [("subscribe", ("clinton", "obama"))]
        assert manager.state is SubscriptionState.SUBSCRIBED
        assert manager.is_subscribed is True
        assert manager.applied_terms == ("clinton", "obama")

    async def test_stop_observed_before_next_subscribe(self, feed, calls):
        manager, _ = _make_manager(feed)

        await manager.rotate(("clinton",))
        await manager.rotate(("obama",))
        await manager.rotate(("solarpower",))

        assert calls == [
            ("subscribe", ("clinton",)),
            ("stop", ("clinton",)),
            ("subscribe", ("obama",)),
            ("stop", ("obama",)),
            ("subscribe", ("solarpower",)),
        ]
        assert [h.stopped for h in feed.handles] == [True, True, False]

    async def test_same_terms_is_noop(self, feed, calls):
        manager, _ = _make_manager(feed)

        await manager.rotate(("clinton",))
        await manager.rotate(("clinton",))

        assert calls == [("subscribe", ("clinton",))]

    async def test_subscribe_failure_leaves_applied_terms(self, feed, calls):
        manager, _ = _make_manager(feed)
        await manager.rotate(("clinton",))

        feed.fail_subscribe = True
        before = _rotations("subscribe_failed")
        await manager.rotate(("obama",))

        assert calls[-2:] == [("stop", ("clinton",)), ("subscribe", ("obama",))]
        assert manager.applied_terms == ("clinton",)
        assert manager.state is SubscriptionState.UNSUBSCRIBED
        assert _rotations("subscribe_failed") == before + 1

    async def test_retry_after_subscribe_failure(self, feed, calls):
        manager, _ = _make_manager(feed)
        feed.fail_subscribe = True
        await manager.rotate(("clinton",))
        assert manager.applied_terms == ()

        feed.fail_subscribe = False
        await manager.rotate(("clinton",))

        assert manager.applied_terms == ("clinton",)
        assert manager.is_subscribed

    async def test_stop_failure_postpones_rotation(self, feed, calls, caplog):
        feed.fail_stop = True
        manager, _ = _make_manager(feed)
        await manager.rotate(("clinton",))

        await manager.rotate(("obama",))

        assert calls == [("subscribe", ("clinton",)), ("stop", ("clinton",))]
        assert manager.applied_terms == ("clinton",)
        assert manager.is_subscribed
        assert "rotation postponed" in caplog.text

    async def test_empty_terms_stop_without_subscribing(self, feed, calls):
        manager, _ = _make_manager(feed)
        await manager.rotate(("clinton",))

        await manager.rotate(())

        assert calls == [("subscribe", ("clinton",)), ("stop", ("clinton",))]
        assert manager.applied_terms == ()
        assert manager.state is SubscriptionState.UNSUBSCRIBED

    async def test_subscribed_gauge(self, feed):
        manager, _ = _make_manager(feed)
        await manager.rotate(("clinton", "obama"))

        assert REGISTRY.get_sample_value("feedrouter_subscribed") == 1.0
        assert REGISTRY.get_sample_value("feedrouter_applied_terms") == 2.0


class TestCallbacks:

    async def test_events_forwarded_to_dispatcher(self, feed):
        manager, dispatcher = _make_manager(feed)
        await manager.rotate(("clinton",))

        event = Event(event_id="e-1", text="clinton news")
        await feed.on_event(event)

        dispatcher.assign.assert_awaited_once_with(event)

    async def test_status_notifications_logged(self, feed, caplog):
        manager, _ = _make_manager(feed)
        await manager.rotate(("clinton",))

        with caplog.at_level(logging.INFO, logger="feedrouter.subscription"):
            feed.on_status("disconnect", {"code": 7})
            feed.on_status("connected", {})

        messages = [(r.levelno, r.getMessage()) for r in caplog.records]
        assert (logging.WARNING, "Feed - disconnect") in messages
        assert (logging.INFO, "Feed - connected") in messages
        disconnect = next(r for r in caplog.records if r.getMessage() == "Feed - disconnect")
        assert disconnect.feed_status == "disconnect"
        assert disconnect.code == 7


class TestClose:

    async def test_close_stops_handle(self, feed, calls):
        manager, _ = _make_manager(feed)
        await manager.rotate(("clinton",))

        await manager.close()

        assert calls[-1] == ("stop", ("clinton",))
        assert manager.state is SubscriptionState.UNSUBSCRIBED

    async def test_close_without_subscription(self, feed, calls):
        manager, _ = _make_manager(feed)
        await manager.close()
        assert calls == []

    async def test_close_swallows_stop_error(self, feed):
        feed.fail_stop = True
        manager, _ = _make_manager(feed)
        await manager.rotate(("clinton",))

        await manager.close()

        assert manager.state is SubscriptionState.UNSUBSCRIBED

    async def test_rotate_after_close_ignored(self, feed, calls):
        manager, _ = _make_manager(feed)
        await manager.close()

        await manager.rotate(("clinton",))

        assert calls == []
