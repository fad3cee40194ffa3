"""
Narrow interfaces to the external collaborators.

The router never talks to a feed client, cloud inventory API or database
directly; it depends on these protocols and receives implementations by
injection. Every method is a suspension point. Implementations raise on
failure; the calling component decides the policy (log and retry on the
next tick, or log and drop).
"""

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from feedrouter.models import Event, ManagedWorker, Stat

EventCallback = Callable[[Event], Awaitable[None]]
StatusCallback = Callable[[str, dict[str, Any]], None]


@runtime_checkable
class TermSource(Protocol):
    """Durable store of subscription terms."""

    async def list_terms(self) -> Sequence[str]:
        """Return every stored term, unnormalized."""
        ...


@runtime_checkable
class WorkerInventory(Protocol):
    """Live view of the managed worker machines."""

    async def list_managed_workers(self) -> Sequence[ManagedWorker] | None:
        """Return the current manifest.

        None means the provider returned no manifest at all (empty or
        unsupported inventory) and is treated as an empty pool.
        """
        ...


@runtime_checkable
class FeedHandle(Protocol):
    """An open upstream subscription."""

    async def stop(self) -> None:
        """Close the subscription. No callbacks are expected afterwards."""
        ...


@runtime_checkable
class FeedSource(Protocol):
    """Upstream publish/subscribe endpoint (whole-filter subscriptions only)."""

    async def subscribe(
        self,
        terms: Sequence[str],
        on_event: EventCallback,
        on_status: StatusCallback | None = None,
    ) -> FeedHandle:
        """Open a subscription filtered by ``terms``.

        ``on_event`` is awaited for every received event. ``on_status`` is
        called with connection notifications ("connect", "connected",
        "disconnect", "reconnect", "limit", "warning", "error").
        """
        ...


@runtime_checkable
class EventStore(Protocol):
    """Durable store of ingested events and throughput stats."""

    async def insert(self, event: Event) -> str:
        """Persist a new event with its assigned worker; returns its key."""
        ...

    async def update_assignment(self, event_id: str, worker_id: str) -> None:
        """Overwrite the assigned worker of a stored event."""
        ...

    def find_by_assigned_worker_not_in(
        self, worker_ids: Sequence[str]
    ) -> AsyncIterator[Event]:
        """Lazily yield stored events whose worker is not in ``worker_ids``."""
        ...

    async def record_stat(self, stat: Stat) -> str:
        """Persist a throughput record; returns its key."""
        ...
