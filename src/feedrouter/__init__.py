"""
Feed router.

Subscribes to an upstream event feed filtered by a set of terms, assigns
each event to a live worker round-robin, and reclaims events left behind
by workers that leave the pool.
"""

from feedrouter.dispatcher import Dispatcher, RoundRobinSelector
from feedrouter.models import Event, LifecycleState, ManagedWorker, Stat, SubscriptionState
from feedrouter.pool import WorkerPoolTracker
from feedrouter.reclaimer import LostWorkReclaimer
from feedrouter.service import FeedRouterService
from feedrouter.stats import IngestCounter, StatsReporter
from feedrouter.subscription import SubscriptionManager
from feedrouter.terms import TermWatcher, normalize_terms

__all__ = [
    "Dispatcher",
    "Event",
    "FeedRouterService",
    "IngestCounter",
    "LifecycleState",
    "LostWorkReclaimer",
    "ManagedWorker",
    "RoundRobinSelector",
    "Stat",
    "StatsReporter",
    "SubscriptionManager",
    "SubscriptionState",
    "TermWatcher",
    "WorkerPoolTracker",
    "normalize_terms",
]
