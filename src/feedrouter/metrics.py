"""
Prometheus metrics for router monitoring.

Focused on essential metrics:
- Assignment counts (fresh vs reclaimed)
- Pool size and subscription state
- Collaborator failures by operation
- Ingest throughput
"""

import logging
import socket

from prometheus_client import REGISTRY, Counter, Gauge, start_http_server

logger = logging.getLogger(__name__)

events_assigned_total = Counter(
    "feedrouter_events_assigned_total",
    "Events assigned to a worker",
    ["kind"],  # new | reclaimed
)

sentinel_assignments_total = Counter(
    "feedrouter_sentinel_assignments_total",
    "Assignments that fell back to the sentinel worker (empty pool)",
)

persist_failures_total = Counter(
    "feedrouter_persist_failures_total",
    "Event store writes that failed and were dropped",
    ["operation"],  # insert | update_assignment | record_stat
)

query_failures_total = Counter(
    "feedrouter_query_failures_total",
    "Polling-cycle queries that failed",
    ["source"],  # inventory | terms | events
)

subscription_rotations_total = Counter(
    "feedrouter_subscription_rotations_total",
    "Subscription rotations by outcome",
    ["outcome"],  # success | stop_failed | subscribe_failed
)

events_reclaimed_total = Counter(
    "feedrouter_events_reclaimed_total",
    "Orphaned events moved to a live worker",
)

pool_size = Gauge(
    "feedrouter_pool_size",
    "Number of live workers in the latest snapshot",
)

subscribed = Gauge(
    "feedrouter_subscribed",
    "1 while an upstream subscription is open",
)

applied_terms = Gauge(
    "feedrouter_applied_terms",
    "Number of terms in the applied term set",
)

events_per_second = Gauge(
    "feedrouter_events_per_second",
    "Ingest throughput over the last stats window",
)


def start_metrics_server(preferred_port: int) -> int:
    """Start Prometheus metrics server with automatic port fallback.

    Returns actual port number that the server is listening on.
    """
    try:
        start_http_server(preferred_port, registry=REGISTRY)
        return preferred_port
    except OSError as e:
        if e.errno != 98:
            raise

        logger.info(
            "Port already in use, finding available port",
            extra={"preferred_port": preferred_port},
        )
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("", 0))
            s.listen(1)
            available_port = s.getsockname()[1]

        start_http_server(available_port, registry=REGISTRY)
        return available_port
