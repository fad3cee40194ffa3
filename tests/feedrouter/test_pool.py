from unittest.mock import AsyncMock

from prometheus_client import REGISTRY

from feedrouter.adapters.memory import StaticWorkerInventory
from feedrouter.models import LifecycleState, ManagedWorker
from feedrouter.pool import WorkerPoolTracker, live_worker_ids


def _worker(worker_id, state=LifecycleState.RUNNING):
    return ManagedWorker(id=worker_id, lifecycle_state=state)


def _failures(source):
    return REGISTRY.get_sample_value("feedrouter_query_failures_total", {"source": source}) or 0.0


class TestLiveWorkerIds:

    def test_keeps_assignable_states_in_manifest_order(self):
        workers = [
            _worker("w3"),
            _worker("w1", LifecycleState.CREATING),
            _worker("w2", LifecycleState.STOPPING),
            _worker("w4", LifecycleState.OTHER),
        ]
        assert live_worker_ids(workers) == ("w3", "w1")

    def test_none_manifest_is_empty_pool(self):
        assert live_worker_ids(None) == ()

    def test_empty_manifest_is_empty_pool(self):
        assert live_worker_ids([]) == ()

    def test_duplicates_dropped(self):
        workers = [_worker("https://x/instances/w1"), _worker("w1"), _worker("w2")]
        assert live_worker_ids(workers) == ("w1", "w2")

    def test_custom_assignable_states(self):
        workers = [_worker("w1"), _worker("w2", LifecycleState.CREATING)]
        assert live_worker_ids(workers, {LifecycleState.RUNNING}) == ("w1",)


class TestWorkerPoolTracker:

    async def test_initial_snapshot_is_empty(self):
        tracker = WorkerPoolTracker(StaticWorkerInventory([_worker("w1")]))
        assert tracker.current_pool() == ()
        assert tracker.has_refreshed is False

    async def test_refresh_replaces_snapshot(self):
        inventory = StaticWorkerInventory([_worker("w1"), _worker("w2")])
        tracker = WorkerPoolTracker(inventory)

        await tracker.refresh()
        assert tracker.current_pool() == ("w1", "w2")
        assert tracker.has_refreshed is True

        inventory.set_workers([_worker("w2")])
        await tracker.refresh()
        assert tracker.current_pool() == ("w2",)

    async def test_none_manifest_empties_pool(self):
        inventory = StaticWorkerInventory([_worker("w1")])
        tracker = WorkerPoolTracker(inventory)
        await tracker.refresh()

        inventory.set_workers(None)
        await tracker.refresh()
        assert tracker.current_pool() == ()

    async def test_failure_keeps_previous_snapshot(self, caplog):
        inventory = StaticWorkerInventory([_worker("w1")])
        tracker = WorkerPoolTracker(inventory)
        await tracker.refresh()

        inventory.list_managed_workers = AsyncMock(side_effect=TimeoutError("inventory timed out"))
        before = _failures("inventory")
        await tracker.refresh()

        assert tracker.current_pool() == ("w1",)
        assert _failures("inventory") == before + 1
        assert "keeping previous pool" in caplog.text

    async def test_failure_before_first_refresh(self):
        inventory = AsyncMock()
        inventory.list_managed_workers.side_effect = ConnectionError("down")
        tracker = WorkerPoolTracker(inventory)

        await tracker.refresh()

        assert tracker.current_pool() == ()
        assert tracker.has_refreshed is False

    async def test_state_names_accepted_as_strings(self):
        inventory = StaticWorkerInventory(
            [_worker("w1"), _worker("w2", LifecycleState.CREATING)]
        )
        tracker = WorkerPoolTracker(inventory, ["running"])
        await tracker.refresh()
        assert tracker.current_pool() == ("w1",)

    async def test_pool_size_gauge(self):
        tracker = WorkerPoolTracker(StaticWorkerInventory([_worker("a"), _worker("b")]))
        await tracker.refresh()
        assert REGISTRY.get_sample_value("feedrouter_pool_size") == 2.0
