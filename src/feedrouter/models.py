"""
Value types shared by the router components.

Contains Pydantic models for feed events, inventory entries and throughput
stats, plus the small enums describing worker and subscription lifecycle.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SENTINEL_WORKER = "default"


class LifecycleState(str, Enum):
    """Lifecycle states reported by the worker inventory.

    Only a subset is assignable (RUNNING and CREATING by default); anything
    the inventory reports that is not listed here maps to OTHER.
    """

    RUNNING = "RUNNING"
    CREATING = "CREATING"
    RECREATING = "RECREATING"
    RESTARTING = "RESTARTING"
    STOPPING = "STOPPING"
    DELETING = "DELETING"
    ABANDONING = "ABANDONING"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: Any) -> "LifecycleState":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.OTHER


class SubscriptionState(str, Enum):
    """Upstream subscription lifecycle."""

    UNSUBSCRIBED = "UNSUBSCRIBED"
    SUBSCRIBED = "SUBSCRIBED"


def worker_id_from_instance(instance: str) -> str:
    """Map an inventory instance reference to a worker id.

    Inventories often report instances as resource URLs; the last path
    segment is the instance name.

        >>> worker_id_from_instance("https://example/zones/z/instances/node-1")
        'node-1'
        >>> worker_id_from_instance("node-1")
        'node-1'
    """
    return instance.strip().rstrip("/").split("/")[-1]


class ManagedWorker(BaseModel):
    """One entry of the worker inventory's manifest."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Worker id or instance URL")
    lifecycle_state: LifecycleState = Field(
        default=LifecycleState.OTHER, description="Inventory lifecycle state"
    )

    @field_validator("lifecycle_state", mode="before")
    @classmethod
    def parse_state(cls, v: Any) -> LifecycleState:
        return LifecycleState.parse(v)

    @property
    def worker_id(self) -> str:
        return worker_id_from_instance(self.id)


class Event(BaseModel):
    """One ingested unit from the feed.

    ``assigned_worker`` is None only between receipt and the first insert;
    every persisted event carries exactly one worker id, and reassignment
    overwrites it.

    Attributes:
        event_id: External unique identifier from the feed
        text: Event text payload
        metadata: Additional payload fields
        created_at: Creation time reported by the feed (falls back to now)
        assigned_worker: Worker id the event is assigned to
    """

    event_id: str = Field(..., min_length=1, description="External unique identifier")
    text: str = Field(default="", description="Event text payload")
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    assigned_worker: str | None = Field(default=None)

    @field_validator("event_id")
    @classmethod
    def validate_event_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("event_id cannot be empty or whitespace")
        return v.strip()

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: Any) -> datetime:
        """Accept datetimes, epoch millis, ISO strings or the feed's
        ``Wed Aug 27 13:08:45 +0000 2008`` format; anything unparseable
        becomes the current time."""
        if isinstance(v, datetime):
            return v if v.tzinfo else v.replace(tzinfo=UTC)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return datetime.fromtimestamp(v / 1000, tz=UTC)
        if isinstance(v, str):
            for parse in (
                lambda s: datetime.fromisoformat(s.replace("Z", "+00:00")),
                lambda s: datetime.strptime(s, "%a %b %d %H:%M:%S %z %Y"),
            ):
                try:
                    parsed = parse(v.strip())
                except ValueError:
                    continue
                return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        return datetime.now(UTC)


class Stat(BaseModel):
    """Throughput record written once per reporting interval."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    events_per_second: float = Field(..., ge=0.0)
