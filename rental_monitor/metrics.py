"""
Prometheus metrics for monitoring query runs, upstream calls, and push delivery.

The monitor runs as a single-shot batch job, so nothing scrapes it directly.
At the end of a run the default registry is pushed to a Pushgateway when
PUSHGATEWAY_URL is configured.

Metric Types:
    - Counter: Cumulative metrics that only increase (e.g., total API requests)
    - Histogram: Observations bucketed by value (e.g., request latency)
    - Gauge: Point-in-time value that can go up or down (e.g., active queries)

Example:
    >>> from rental_monitor.metrics import query_duration, listings_linked
    >>> with query_duration.time():
    ...     result = processor.process(query)
    ...     listings_linked.inc(result.new_count)
"""

from __future__ import annotations

import structlog
from prometheus_client import REGISTRY, Counter, Gauge, Histogram, push_to_gateway

logger = structlog.get_logger(__name__)

JOB_NAME = "rental_monitor"

# =============================================================================
# Query Metrics
# =============================================================================

query_runs = Counter(
    "rental_monitor_query_runs_total",
    "Total number of saved-query runs",
    ["status"],
)
"""
Counter for saved-query runs.

Labels:
    status: success (no errors), partial (some listings failed) or failure
"""

query_duration = Histogram(
    "rental_monitor_query_duration_seconds",
    "Duration of a single saved-query run in seconds",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, float("inf")),
)

listings_linked = Counter(
    "rental_monitor_listings_linked_total",
    "Total number of new listings linked to saved queries",
)

enrichment_results = Counter(
    "rental_monitor_enrichment_total",
    "Listing enrichment attempts",
    ["status"],
)
"""
Counter for detail-fetch enrichment.

Labels:
    status: hd (HD photos applied), thumbnail (no HD photos found) or failure
"""

active_queries = Gauge(
    "rental_monitor_active_queries",
    "Number of active saved queries loaded by the last run",
)

# =============================================================================
# Upstream API Metrics
# =============================================================================

api_requests = Counter(
    "rental_monitor_source_requests_total",
    "Total listing source API requests made",
    ["endpoint", "status_code"],
)
"""
Counter for listing source requests.

Labels:
    endpoint: search or details
    status_code: HTTP status code, or "error" for transport failures
"""

api_latency = Histogram(
    "rental_monitor_source_latency_seconds",
    "Listing source request latency in seconds",
    ["endpoint"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, float("inf")),
)

# =============================================================================
# Push Metrics
# =============================================================================

notifications_sent = Counter(
    "rental_monitor_notifications_total",
    "Summary notifications dispatched per user",
    ["status"],
)

device_tokens_pruned = Counter(
    "rental_monitor_device_tokens_pruned_total",
    "Device tokens removed after a permanent delivery failure",
)


def push_run_metrics(gateway_url: str | None) -> None:
    """
    Push the default registry to a Prometheus Pushgateway.

    Args:
        gateway_url: Pushgateway address; nothing is pushed when empty.
    """
    if not gateway_url:
        return

    try:
        push_to_gateway(gateway_url, job=JOB_NAME, registry=REGISTRY)
    except OSError as e:
        logger.warning("metrics_push_failed", gateway_url=gateway_url, error=str(e))
