"""Context managers for structured logging."""

from typing import Dict, Optional

from core.logging.context import get_log_context, set_log_context


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(stage="reclaim", cycle_id=cycle_id):
            # All logs in this block will have stage and cycle_id
            await reclaimer.reclaim()
    """

    def __init__(
        self,
        cycle_id: Optional[str] = None,
        stage: Optional[str] = None,
        instance_id: Optional[str] = None,
        event_id: Optional[str] = None,
    ):
        self.new_context = {
            "cycle_id": cycle_id,
            "stage": stage,
            "instance_id": instance_id,
            "event_id": event_id,
        }
        self.old_context: Dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self.old_context = get_log_context()
        for key, value in self.new_context.items():
            if value is not None:
                set_log_context(**{key: value})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Restore old context
        set_log_context(
            cycle_id=self.old_context.get("cycle_id", ""),
            stage=self.old_context.get("stage", ""),
            instance_id=self.old_context.get("instance_id", ""),
            event_id=self.old_context.get("event_id", ""),
        )
        return False
