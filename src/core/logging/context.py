"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_cycle_id: ContextVar[str] = ContextVar("cycle_id", default="")
_stage_name: ContextVar[str] = ContextVar("stage_name", default="")
_instance_id: ContextVar[str] = ContextVar("instance_id", default="")
_event_id: ContextVar[str] = ContextVar("event_id", default="")


def set_log_context(
    cycle_id: Optional[str] = None,
    stage: Optional[str] = None,
    instance_id: Optional[str] = None,
    event_id: Optional[str] = None,
) -> None:
    if cycle_id is not None:
        _cycle_id.set(cycle_id)
    if stage is not None:
        _stage_name.set(stage)
    if instance_id is not None:
        _instance_id.set(instance_id)
    if event_id is not None:
        _event_id.set(event_id)


def get_log_context() -> Dict[str, str]:
    return {
        "cycle_id": _cycle_id.get(),
        "stage": _stage_name.get(),
        "instance_id": _instance_id.get(),
        "event_id": _event_id.get(),
    }


def clear_log_context() -> None:
    _cycle_id.set("")
    _stage_name.set("")
    _instance_id.set("")
    _event_id.set("")
