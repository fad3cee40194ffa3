"""
Term normalization and the term watcher.

The upstream feed only supports whole-filter subscriptions, so term changes
are detected with a level-triggered diff: the freshly fetched set is
normalized and compared with the applied one, and any difference causes a
full resubscription.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from core.errors import TransientQueryFailure, wrap_exception
from core.logging.utilities import log_exception
from feedrouter import metrics
from feedrouter.protocols import TermSource

if TYPE_CHECKING:
    from feedrouter.subscription import SubscriptionManager

logger = logging.getLogger(__name__)


def normalize_terms(raw_terms: Iterable[str | None]) -> tuple[str, ...]:
    """Lowercase, trim, drop empties and sort ascending.

    Duplicates that survive normalization are kept; both sides of every
    comparison are sorted, so equality stays deterministic.

        >>> normalize_terms([" Clinton ", "clinton", "", "Obama"])
        ('clinton', 'clinton', 'obama')
    """
    normalized = (str(term).strip().lower() for term in raw_terms if term is not None)
    return tuple(sorted(term for term in normalized if term))


def terms_equal(left: Sequence[str], right: Sequence[str]) -> bool:
    """Length first, then element by element."""
    if len(left) != len(right):
        return False
    return all(a == b for a, b in zip(left, right))


class TermWatcher:
    """Polls the term source and drives subscription rotation on change."""

    def __init__(self, term_source: TermSource, subscriptions: "SubscriptionManager"):
        self._term_source = term_source
        self._subscriptions = subscriptions

    async def poll(self) -> None:
        try:
            raw_terms = await self._term_source.list_terms()
        except Exception as e:
            error = wrap_exception(e, TransientQueryFailure, {"source": "terms"})
            metrics.query_failures_total.labels(source="terms").inc()
            log_exception(
                logger,
                error,
                "Could not retrieve terms, keeping current subscription",
                level=logging.WARNING,
                include_traceback=False,
            )
            return

        new_terms = normalize_terms(raw_terms or ())
        applied = self._subscriptions.applied_terms

        if terms_equal(new_terms, applied):
            logger.debug("Terms unchanged", extra={"term_count": len(new_terms)})
            return

        logger.info(
            "Term set changed, rotating subscription",
            extra={
                "terms": list(new_terms),
                "previous_terms": list(applied),
                "term_count": len(new_terms),
            },
        )
        await self._subscriptions.rotate(new_terms)
