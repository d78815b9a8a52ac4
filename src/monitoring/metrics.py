"""
Prometheus metrics for RivalMap observability.

Usage:
    from src.monitoring.metrics import track_search

    with track_search() as ctx:
        result = await run_search(provider, request, timeout)
        ctx["status"] = "success"

    # Or manually
    AUTH_OUTCOMES.labels(outcome="unauthorized").inc()
"""

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from starlette.applications import Starlette
from starlette.responses import Response
from starlette.routing import Route


# =============================================================================
# Metric Definitions
# =============================================================================

AUTH_OUTCOMES = Counter(
    "rivalmap_auth_outcomes_total",
    "Authenticated request gate outcomes",
    ["outcome"],  # authenticated | unauthorized | unavailable
)

SEARCH_VALIDATION_FAILURES = Counter(
    "rivalmap_search_validation_failures_total",
    "Search request validation failures by field",
    ["field", "code"],
)

SEARCH_DURATION = Histogram(
    "rivalmap_search_duration_seconds",
    "Duration of competitor search collaborator calls",
    ["status"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

STORE_PROBES = Counter(
    "rivalmap_store_probes_total",
    "Backing-store connectivity probes",
    ["status"],  # success | failure
)

STORE_PROBE_LATENCY = Histogram(
    "rivalmap_store_probe_latency_seconds",
    "Latency of backing-store connectivity probes",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

RATE_LIMIT_DECISIONS = Counter(
    "rivalmap_rate_limit_decisions_total",
    "Rate limit decisions by subject kind",
    ["subject", "decision"],  # user | client ; allowed | limited | bypassed
)


# =============================================================================
# Tracking Helpers
# =============================================================================


@contextmanager
def track_search() -> Generator[dict, None, None]:
    """
    Context manager to time a competitor search call.

    The caller sets ``ctx["status"]``; anything that escapes is counted as an error.
    """
    start_time = time.perf_counter()
    context = {"status": "error"}
    try:
        yield context
    finally:
        duration = time.perf_counter() - start_time
        SEARCH_DURATION.labels(status=context.get("status", "error")).observe(duration)


def record_store_probe(success: bool, latency_seconds: float) -> None:
    """Record one connectivity probe."""
    STORE_PROBES.labels(status="success" if success else "failure").inc()
    STORE_PROBE_LATENCY.observe(latency_seconds)


def record_validation_failures(violations) -> None:
    """Count each violated field of a rejected search request."""
    for violation in violations:
        SEARCH_VALIDATION_FAILURES.labels(field=violation.field, code=violation.code).inc()


# =============================================================================
# Metrics Endpoint
# =============================================================================


async def metrics_endpoint(request) -> Response:
    """Prometheus metrics endpoint handler."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


def get_metrics_app() -> Starlette:
    """
    Get a Starlette app for serving metrics.

    Mounted at /metrics by ``src.api.main``.
    """
    return Starlette(
        routes=[
            Route("/", metrics_endpoint),
        ]
    )
