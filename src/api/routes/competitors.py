"""Competitor search endpoints for the RivalMap API.

Rate limits the caller (per user when a bearer token resolves, else per client
address), validates the search body, hands it to the configured search
collaborator and returns the resulting map, either as JSON primitives or as an
HTML page.
"""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import HTMLResponse

from src.api.dependencies import (
    get_auth_gate,
    get_competitor_search,
    get_map_sink,
    get_rate_limit_gate,
)
from src.api.models import SearchRequestBody, SearchResultData
from src.auth.gate import AuthGate
from src.auth.rate_limit import RateLimitGate
from src.core.responses import ApiError, ApiSuccess, success_response
from src.config.settings import Settings, get_settings
from src.core.exceptions import SearchValidationError
from src.maps.contract import MapViewModel, render_map
from src.maps.sinks import MapSink
from src.monitoring.metrics import record_validation_failures, track_search
from src.search.models import SearchRequest
from src.search.provider import run_search
from src.search.validation import Violation, validate_search_request

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/competitors", tags=["Competitors"])


async def _read_body(request: Request) -> object:
    try:
        return await request.json()
    except ValueError:
        raise SearchValidationError(
            [Violation("body", "type_mismatch", "Request body must be valid JSON")]
        )


def _validated(payload: object) -> SearchRequest:
    result = validate_search_request(payload)
    if not result.ok:
        record_validation_failures(result.error.violations)
        logger.info("search_request_rejected", fields=result.error.fields)
        raise result.error
    return result.value


async def _search(
    request: Request,
    output: str,
    settings: Settings,
    sink: MapSink,
) -> Response:
    search_request = _validated(await _read_body(request))

    logger.info(
        "competitor_search_started",
        radius=search_request.radius,
        competitor_count=search_request.competitor_count,
    )

    provider = get_competitor_search()
    with track_search() as ctx:
        result = await run_search(provider, search_request, settings.search_timeout_seconds)
        ctx["status"] = "success"

    view = MapViewModel(center=result.center, competitors=result.competitors)
    rendered = render_map(view, zoom=settings.map_default_zoom)

    logger.info("competitor_search_completed", competitors=len(result.competitors))

    if output == "html":
        return HTMLResponse(sink.draw(rendered))

    return success_response(
        SearchResultData(request=search_request, map=view, render=rendered),
        "Competitors retrieved successfully",
    )


@router.post(
    "/search",
    summary="Search nearby competitors",
    description=(
        "Validate an address/radius/count search, resolve it through the competitor "
        "search collaborator and return the map view model and drawable markers."
    ),
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": SearchRequestBody.model_json_schema(by_alias=True)}
            },
        }
    },
    responses={
        200: {"model": ApiSuccess, "description": "Competitors retrieved successfully"},
        400: {"model": ApiError, "description": "Validation error"},
        429: {"model": ApiError, "description": "Rate limit exceeded"},
        503: {"model": ApiError, "description": "Search collaborator unavailable"},
    },
)
async def search_competitors(
    request: Request,
    output: Literal["json", "html"] = Query("json", alias="format"),
    settings: Settings = Depends(get_settings),
    sink: MapSink = Depends(get_map_sink),
    auth_gate: AuthGate = Depends(get_auth_gate),
    rate_gate: RateLimitGate = Depends(get_rate_limit_gate),
) -> Response:
    # Identity is optional here; it only selects the rate limit bucket.
    principal = await auth_gate.try_authenticate(request)
    return await rate_gate.guard(
        request,
        lambda: _search(request, output, settings, sink),
        principal,
    )
