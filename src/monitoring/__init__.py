"""
Monitoring and observability for RivalMap.

Provides Prometheus metrics for the auth gate, rate limiting, search
validation, the search collaborator and the backing-store probe.

Usage:
    from src.monitoring import record_store_probe

    record_store_probe(success=True, latency_seconds=0.012)
"""

from src.monitoring.metrics import (
    AUTH_OUTCOMES,
    SEARCH_DURATION,
    SEARCH_VALIDATION_FAILURES,
    STORE_PROBES,
    STORE_PROBE_LATENCY,
    RATE_LIMIT_DECISIONS,
    get_metrics_app,
    record_store_probe,
    record_validation_failures,
    track_search,
)

__all__ = [
    "AUTH_OUTCOMES",
    "SEARCH_DURATION",
    "SEARCH_VALIDATION_FAILURES",
    "STORE_PROBES",
    "STORE_PROBE_LATENCY",
    "RATE_LIMIT_DECISIONS",
    "get_metrics_app",
    "record_store_probe",
    "record_validation_failures",
    "track_search",
]
