"""
Upstream subscription ownership and the rotation protocol.

The SubscriptionManager is the only writer of the active feed handle and
of the applied term set. Rotation stops the old handle before opening the
new one: there is a short window with no subscription rather than ever two
open subscriptions at once. The applied term set is replaced only after
the new subscription is open, so a failure anywhere in between leaves it
stale and the next term poll tries again.
"""

import logging
from collections.abc import Sequence
from typing import Any

from core.errors import SubscriptionFailure, wrap_exception
from core.logging.utilities import log_exception, log_with_context
from feedrouter import metrics
from feedrouter.dispatcher import Dispatcher
from feedrouter.models import Event, SubscriptionState
from feedrouter.protocols import FeedHandle, FeedSource
from feedrouter.terms import terms_equal

logger = logging.getLogger(__name__)

# Feed status notification -> log level
STATUS_LOG_LEVELS = {
    "connect": logging.INFO,
    "connected": logging.INFO,
    "reconnect": logging.INFO,
    "disconnect": logging.WARNING,
    "limit": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.WARNING,
}


class SubscriptionManager:
    """Owns the single active feed subscription and the applied term set."""

    def __init__(self, feed: FeedSource, dispatcher: Dispatcher):
        self._feed = feed
        self._dispatcher = dispatcher
        self._handle: FeedHandle | None = None
        self._applied_terms: tuple[str, ...] = ()
        self._state = SubscriptionState.UNSUBSCRIBED
        self._closed = False

    @property
    def applied_terms(self) -> tuple[str, ...]:
        return self._applied_terms

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def is_subscribed(self) -> bool:
        return self._state is SubscriptionState.SUBSCRIBED

    async def rotate(self, terms: Sequence[str]) -> None:
        """Replace the active subscription with one filtered by ``terms``.

        ``terms`` must already be normalized. Unchanged terms are a no-op.
        Never raises: failures are logged and leave the applied term set
        as it was.
        """
        new_terms = tuple(terms)
        if terms_equal(new_terms, self._applied_terms):
            return

        if self._closed:
            logger.debug("Rotation requested after close, ignoring")
            return

        if self._handle is not None:
            try:
                await self._handle.stop()
            except Exception as e:
                # The old handle may still be open; opening another would
                # break the single-subscription rule, so give up this round.
                error = wrap_exception(e, SubscriptionFailure, {"operation": "stop"})
                metrics.subscription_rotations_total.labels(outcome="stop_failed").inc()
                log_exception(
                    logger,
                    error,
                    "Could not stop current subscription, rotation postponed",
                    terms=list(new_terms),
                )
                return
            self._handle = None
            self._set_state(SubscriptionState.UNSUBSCRIBED)
            logger.info(
                "Stopped subscription",
                extra={"previous_terms": list(self._applied_terms)},
            )

        if not new_terms:
            # A whole-filter subscription needs at least one term
            self._applied_terms = new_terms
            metrics.applied_terms.set(0)
            metrics.subscription_rotations_total.labels(outcome="success").inc()
            logger.warning("Term set is empty, staying unsubscribed")
            return

        try:
            handle = await self._feed.subscribe(
                new_terms, self._handle_event, self._handle_status
            )
        except Exception as e:
            error = wrap_exception(e, SubscriptionFailure, {"operation": "subscribe"})
            metrics.subscription_rotations_total.labels(outcome="subscribe_failed").inc()
            log_exception(
                logger,
                error,
                "Could not open subscription",
                terms=list(new_terms),
                subscription_state=self._state.value,
            )
            return

        if self._closed:
            # close() ran while subscribe() was in flight
            await self._stop_quietly(handle)
            return

        self._handle = handle
        self._set_state(SubscriptionState.SUBSCRIBED)
        self._applied_terms = new_terms
        metrics.applied_terms.set(len(new_terms))
        metrics.subscription_rotations_total.labels(outcome="success").inc()
        logger.info(
            "Subscribed to feed",
            extra={"terms": list(new_terms), "term_count": len(new_terms)},
        )

    async def close(self) -> None:
        """Stop the active subscription for shutdown."""
        self._closed = True
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self._set_state(SubscriptionState.UNSUBSCRIBED)
        await self._stop_quietly(handle)
        logger.info("Subscription closed")

    async def _stop_quietly(self, handle: FeedHandle) -> None:
        try:
            await handle.stop()
        except Exception as e:
            log_exception(
                logger,
                wrap_exception(e, SubscriptionFailure, {"operation": "stop"}),
                "Error stopping subscription during shutdown",
                level=logging.WARNING,
                include_traceback=False,
            )

    async def _handle_event(self, event: Event) -> None:
        await self._dispatcher.assign(event)

    def _handle_status(self, status: str, details: dict[str, Any] | None = None) -> None:
        level = STATUS_LOG_LEVELS.get(status, logging.DEBUG)
        fields = {k: v for k, v in (details or {}).items() if k != "feed_status"}
        log_with_context(logger, level, f"Feed - {status}", feed_status=status, **fields)

    def _set_state(self, state: SubscriptionState) -> None:
        self._state = state
        metrics.subscribed.set(1 if state is SubscriptionState.SUBSCRIBED else 0)
