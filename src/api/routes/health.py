"""Health check endpoints for the RivalMap API.

Provides the backing-store connectivity probe plus liveness/readiness checks.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from supabase import Client

from src import __version__
from src.api.dependencies import get_supabase
from src.api.models import ConnectivityReport, HealthCheckResponse, HealthStatus
from src.config.settings import Settings, get_settings
from src.core.exceptions import sanitize_error_message
from src.monitoring.metrics import record_store_probe

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])

# Track server start time for uptime calculation
_server_start_time: Optional[float] = None


def set_server_start_time() -> None:
    """Set the server start time. Called on application startup."""
    global _server_start_time
    _server_start_time = time.time()


def get_uptime_seconds() -> Optional[float]:
    """Get server uptime in seconds."""
    if _server_start_time is None:
        return None
    return time.time() - _server_start_time


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _round_trip(client: Client, table: str) -> Any:
    # Zero-row read: needs the table to exist, not any particular column.
    return client.table(table).select("*").limit(0).execute().data


async def check_connectivity(
    get_client: Callable[[], Client],
    table: str,
    timeout_seconds: float,
) -> ConnectivityReport:
    """
    Issue one minimal query against the backing store.

    Never raises: every failure, including a timeout or a client that cannot be
    built, comes back as ``success=False`` with a sanitized message.
    """
    start_time = time.perf_counter()
    try:
        client = get_client()
        result = await asyncio.wait_for(
            asyncio.to_thread(_round_trip, client, table),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        error = f"Backing store did not respond within {timeout_seconds:g}s"
    except Exception as e:
        logger.error(
            "store_connectivity_check_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        error = sanitize_error_message(e)
    else:
        record_store_probe(True, time.perf_counter() - start_time)
        return ConnectivityReport(
            success=True,
            message="Database connection successful",
            result=result,
            timestamp=_utc_timestamp(),
        )

    record_store_probe(False, time.perf_counter() - start_time)
    logger.warning("store_unreachable", error=error, timeout_seconds=timeout_seconds)
    return ConnectivityReport(success=False, error=error, timestamp=_utc_timestamp())


async def check_store_health(settings: Settings) -> HealthStatus:
    """Summarize a connectivity probe as a service status."""
    start_time = time.time()
    report = await check_connectivity(
        get_supabase,
        settings.health_check_table,
        settings.store_timeout_seconds,
    )
    latency = round((time.time() - start_time) * 1000, 2)

    if report.success:
        return HealthStatus(status="healthy", latency_ms=latency, message="Connected to Supabase")
    return HealthStatus(
        status="unhealthy",
        latency_ms=latency,
        message=f"Supabase connection failed: {report.error}",
    )


@router.get(
    "/api/test-db",
    response_model=ConnectivityReport,
    response_model_exclude_none=True,
    summary="Database Connectivity Probe",
    description="Run one round trip against the backing store. Operational use only.",
    responses={500: {"model": ConnectivityReport, "description": "Store unreachable"}},
)
async def test_db(settings: Settings = Depends(get_settings)) -> JSONResponse:
    report = await check_connectivity(
        get_supabase,
        settings.health_check_table,
        settings.store_timeout_seconds,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if report.success else status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=report.model_dump(mode="json", exclude_none=True),
    )


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health Check",
    description="Check the health status of the API and its backing store.",
)
async def health_check(
    settings: Settings = Depends(get_settings),
) -> HealthCheckResponse:
    services = {"supabase": await check_store_health(settings)}

    statuses = [s.status for s in services.values()]
    if all(s == "healthy" for s in statuses):
        overall_status = "healthy"
    elif any(s == "unhealthy" for s in statuses):
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    return HealthCheckResponse(
        status=overall_status,
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        services=services,
        uptime_seconds=get_uptime_seconds(),
    )


@router.get(
    "/health/live",
    summary="Liveness Check",
    description="Simple liveness check for container orchestration.",
)
async def liveness() -> dict:
    """Returns 200 if the service is alive."""
    return {"status": "alive", "timestamp": _utc_timestamp()}


@router.get(
    "/health/ready",
    summary="Readiness Check",
    description="Check if the service is ready to accept traffic.",
)
async def readiness(
    settings: Settings = Depends(get_settings),
) -> dict:
    """Returns 200 only if the backing store answers."""
    store_status = await check_store_health(settings)

    if store_status.status == "unhealthy":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not ready: database unavailable",
        )

    return {"status": "ready", "timestamp": _utc_timestamp()}
