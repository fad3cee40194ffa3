"""Shared collaborator doubles for router tests.

The doubles append to a shared ``calls`` list so tests can assert the
order in which the router talked to its collaborators.
"""

import pytest

from feedrouter.adapters.memory import InMemoryEventStore, InMemoryTermSource, StaticWorkerInventory
from feedrouter.models import LifecycleState, ManagedWorker


def make_workers(*ids, state=LifecycleState.RUNNING):
    return [ManagedWorker(id=worker_id, lifecycle_state=state) for worker_id in ids]


class RecordingHandle:
    def __init__(self, terms, calls, fail_stop=False):
        self.terms = tuple(terms)
        self.calls = calls
        self.fail_stop = fail_stop
        self.stopped = False

    async def stop(self):
        self.calls.append(("stop", self.terms))
        if self.fail_stop:
            raise ConnectionError("stop failed")
        self.stopped = True


class RecordingFeed:
    """FeedSource double that records subscribe/stop order."""

    def __init__(self, calls=None):
        self.calls = calls if calls is not None else []
        self.handles = []
        self.fail_subscribe = False
        self.fail_stop = False
        self.on_event = None
        self.on_status = None

    async def subscribe(self, terms, on_event, on_status=None):
        self.calls.append(("subscribe", tuple(terms)))
        if self.fail_subscribe:
            raise ConnectionError("subscribe failed")
        self.on_event = on_event
        self.on_status = on_status
        handle = RecordingHandle(terms, self.calls, fail_stop=self.fail_stop)
        self.handles.append(handle)
        return handle


class FailingStore(InMemoryEventStore):
    """In-memory store whose operations can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_insert = False
        self.fail_update = False
        self.fail_record_stat = False
        self.fail_query_after = None

    async def insert(self, event):
        if self.fail_insert:
            raise ConnectionError("store unavailable")
        return await super().insert(event)

    async def update_assignment(self, event_id, worker_id):
        if self.fail_update:
            raise ConnectionError("store unavailable")
        await super().update_assignment(event_id, worker_id)

    async def find_by_assigned_worker_not_in(self, worker_ids):
        yielded = 0
        async for event in super().find_by_assigned_worker_not_in(worker_ids):
            if self.fail_query_after is not None and yielded >= self.fail_query_after:
                raise TimeoutError("query timed out")
            yield event
            yielded += 1
        if self.fail_query_after is not None and yielded >= self.fail_query_after:
            raise TimeoutError("query timed out")

    async def record_stat(self, stat):
        if self.fail_record_stat:
            raise ConnectionError("store unavailable")
        return await super().record_stat(stat)


@pytest.fixture
def calls():
    return []


@pytest.fixture
def feed(calls):
    return RecordingFeed(calls)


@pytest.fixture
def store():
    return FailingStore()


@pytest.fixture
def inventory():
    return StaticWorkerInventory(make_workers("w1", "w2", "w3"))


@pytest.fixture
def term_source():
    return InMemoryTermSource(["Clinton", "obama"])
