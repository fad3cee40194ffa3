"""
Unified exception hierarchy for the feed router.

Provides typed exceptions with a category so every component can report
failures consistently. The router has no inline retry loops: a failed
polling cycle is logged and the next scheduled tick recomputes from scratch.
"""


# Import ErrorCategory from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from core.types import ErrorCategory


class RouterError(Exception):
    """
    Base exception for all router errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for handling decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Base Categories
# =============================================================================


class TransientError(RouterError):
    """Base class for failures the next polling cycle may recover from."""

    category = ErrorCategory.TRANSIENT


class PermanentError(RouterError):
    """Base class for failures that will not go away on their own."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Domain-Specific Errors
# =============================================================================


class TransientQueryFailure(TransientError):
    """A collaborator query failed during a polling cycle.

    Policy: log, keep the previous in-memory state, try again next tick.
    """

    pass


class SubscriptionFailure(TransientError):
    """Opening or stopping the upstream feed subscription failed.

    Policy: log, leave the applied term set untouched so a later term
    poll retries the rotation.
    """

    pass


class PersistFailure(TransientError):
    """Writing an event, assignment or stat to the event store failed.

    Policy: log and drop that occurrence. There is no local buffer.
    """

    pass


class ConfigurationError(PermanentError, ValueError):
    """Invalid or missing configuration detected at load time."""

    pass


# =============================================================================
# Error Classification Utilities
# =============================================================================

TRANSIENT_ERROR_MARKERS = frozenset(
    {
        "429",
        "503",
        "502",
        "504",
        "timeout",
        "timed out",
        "connection",
        "throttl",
        "rate limit",
        "temporarily unavailable",
        "service unavailable",
        "gateway",
    }
)

PERMANENT_ERROR_MARKERS = frozenset(
    {
        "400",
        "403",
        "404",
        "forbidden",
        "not found",
        "access denied",
        "invalid",
    }
)


def classify_exception(exc: Exception) -> ErrorCategory:
    """Classify an exception into error category."""
    # Already classified
    if isinstance(exc, RouterError):
        return exc.category

    if isinstance(exc, (TimeoutError, ConnectionError)):
        return ErrorCategory.TRANSIENT

    exc_type = type(exc).__name__.lower()
    exc_str = str(exc).lower()

    if "timeout" in exc_type or "connection" in exc_type:
        return ErrorCategory.TRANSIENT

    if any(marker in exc_str for marker in TRANSIENT_ERROR_MARKERS):
        return ErrorCategory.TRANSIENT

    if isinstance(exc, (ValueError, TypeError, KeyError)):
        return ErrorCategory.PERMANENT

    if any(marker in exc_str for marker in PERMANENT_ERROR_MARKERS):
        return ErrorCategory.PERMANENT

    return ErrorCategory.UNKNOWN


def wrap_exception(
    exc: Exception,
    default_class: type[RouterError] = RouterError,
    context: dict | None = None,
) -> RouterError:
    """Wrap a generic exception in a RouterError subclass.

    Exceptions that are already RouterErrors are returned as-is (with the
    extra context merged in). Anything else is wrapped in ``default_class``
    and the classified category is recorded in the context.
    """
    if isinstance(exc, RouterError):
        if context:
            exc.context.update(context)
        return exc

    context = dict(context or {})
    context["error_category"] = classify_exception(exc).value
    context.setdefault("error_type", type(exc).__name__)

    return default_class(str(exc) or type(exc).__name__, cause=exc, context=context)
