"""In-memory collaborators for development runs and tests."""

from collections.abc import AsyncIterator, Iterable, Sequence

from feedrouter.models import Event, ManagedWorker, Stat


class DuplicateEventError(ValueError):
    """Insert of an event id that is already stored."""


class InMemoryEventStore:
    """
    Event store keyed by event id.

    Inserts enforce the unique-key constraint. Orphan queries iterate over a
    snapshot of the stored events, so assignments made while the caller is
    still consuming the iterator do not affect it.
    """

    def __init__(self) -> None:
        self._events: dict[str, Event] = {}
        self._stats: list[Stat] = []

    @property
    def events(self) -> dict[str, Event]:
        return dict(self._events)

    @property
    def stats(self) -> list[Stat]:
        return list(self._stats)

    def get(self, event_id: str) -> Event | None:
        return self._events.get(event_id)

    async def insert(self, event: Event) -> str:
        if event.event_id in self._events:
            raise DuplicateEventError(f"Event {event.event_id} already stored")
        self._events[event.event_id] = event
        return event.event_id

    async def update_assignment(self, event_id: str, worker_id: str) -> None:
        try:
            stored = self._events[event_id]
        except KeyError:
            raise KeyError(f"Event {event_id} not found") from None
        self._events[event_id] = stored.model_copy(update={"assigned_worker": worker_id})

    async def find_by_assigned_worker_not_in(
        self, worker_ids: Sequence[str]
    ) -> AsyncIterator[Event]:
        live = set(worker_ids)
        for event in list(self._events.values()):
            if event.assigned_worker not in live:
                yield event

    async def record_stat(self, stat: Stat) -> str:
        self._stats.append(stat)
        return f"stat-{len(self._stats)}"


class InMemoryTermSource:
    def __init__(self, terms: Iterable[str] = ()):
        self._terms = list(terms)

    def set_terms(self, terms: Iterable[str]) -> None:
        self._terms = list(terms)

    async def list_terms(self) -> list[str]:
        return list(self._terms)


class StaticWorkerInventory:
    """Inventory returning a fixed manifest; None models a provider with no manifest."""

    def __init__(self, workers: Iterable[ManagedWorker] | None = ()):
        self._workers = None if workers is None else list(workers)

    def set_workers(self, workers: Iterable[ManagedWorker] | None) -> None:
        self._workers = None if workers is None else list(workers)

    async def list_managed_workers(self) -> list[ManagedWorker] | None:
        return None if self._workers is None else list(self._workers)
