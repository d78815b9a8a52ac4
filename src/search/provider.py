"""Competitor search collaborator interface.

Geocoding and nearby-business lookup live outside this service. Anything that
implements ``CompetitorSearchProvider`` can be plugged in at startup with
``src.api.dependencies.set_competitor_search``.
"""

import asyncio
from typing import Protocol, runtime_checkable

import structlog

from src.core.exceptions import DependencyError, DependencyTimeoutError, sanitize_error_message
from src.search.models import CompetitorSearchResult, SearchRequest

logger = structlog.get_logger(__name__)

COMPONENT = "competitor_search"


@runtime_checkable
class CompetitorSearchProvider(Protocol):
    """Resolves a validated request into a center point and ranked competitors."""

    async def search(self, request: SearchRequest) -> CompetitorSearchResult:
        ...


async def run_search(
    provider: CompetitorSearchProvider,
    request: SearchRequest,
    timeout_seconds: float,
) -> CompetitorSearchResult:
    """
    Call the provider once and bound the result to ``request.competitor_count``.

    Raises:
        DependencyTimeoutError: The provider did not answer in time.
        DependencyError: The provider failed or returned an unusable result.
    """
    try:
        result = await asyncio.wait_for(provider.search(request), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning("competitor_search_timeout", timeout_seconds=timeout_seconds)
        raise DependencyTimeoutError(COMPONENT, timeout_seconds)
    except DependencyError:
        raise
    except Exception as e:
        logger.error(
            "competitor_search_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise DependencyError(COMPONENT, sanitize_error_message(e)) from e

    if not isinstance(result, CompetitorSearchResult):
        logger.error("competitor_search_bad_result", result_type=type(result).__name__)
        raise DependencyError(COMPONENT, "Search provider returned an unexpected result")

    return result.limited_to(request.competitor_count)
