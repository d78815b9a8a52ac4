"""Pydantic models for API requests and responses.

This module defines the endpoint payloads for the RivalMap API. The shared
envelopes live in ``src.core.responses``.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.maps.contract import MapRender, MapViewModel
from src.search.models import SearchRequest


# =============================================================================
# Search Models
# =============================================================================


class SearchRequestBody(BaseModel):
    """Documented shape of the search body. Validation happens in src.search.validation."""

    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(..., json_schema_extra={"example": "123 Main St, Springfield"})
    radius: float = Field(..., description="Search radius in miles (1-50)")
    competitor_count: int = Field(
        ...,
        alias="competitorCount",
        description="Number of competitors to return (1-20)",
    )


class SearchResultData(BaseModel):
    """Payload of a successful competitor search."""

    request: SearchRequest
    map: MapViewModel
    render: MapRender


# =============================================================================
# Health Check Models
# =============================================================================


class ConnectivityReport(BaseModel):
    """Result of one backing-store round trip."""

    success: bool = Field(..., description="Whether the round trip succeeded")
    message: Optional[str] = Field(None, description="Status message on success")
    result: Optional[Any] = Field(None, description="Raw round-trip result")
    error: Optional[str] = Field(None, description="Sanitized failure message")
    timestamp: str = Field(..., description="ISO-8601 UTC timestamp")


class HealthStatus(BaseModel):
    """Individual service health status."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        ..., description="Service status"
    )
    latency_ms: Optional[float] = Field(None, description="Response latency in milliseconds")
    message: Optional[str] = Field(None, description="Additional status message")


class HealthCheckResponse(BaseModel):
    """Response model for health check endpoint."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        ..., description="Overall system status"
    )
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(..., description="Check timestamp")
    services: dict[str, HealthStatus] = Field(
        default_factory=dict,
        description="Individual service statuses",
    )
    uptime_seconds: Optional[float] = Field(None, description="Server uptime in seconds")
