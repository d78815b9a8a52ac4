"""
Pytest Configuration and Shared Fixtures.

This module provides common fixtures for all tests:

- search_center / sample_competitors: a small ranked search result
- StaticSearchProvider: in-process competitor search collaborator
- StaticResolver: principal resolver backed by a token -> principal dict
- make_request: builds a bare Starlette request with given headers
- mock_store: Supabase client mock answering the connectivity query
"""

import os

# Settings are read from the environment on first use; give them test values
# before anything under src is imported.
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("APP_ENV", "development")

from typing import Optional
from unittest.mock import MagicMock

import pytest
from starlette.requests import Request

from src.auth.principal import AuthenticatedPrincipal
from src.search.models import Competitor, CompetitorSearchResult, GeoPoint, SearchRequest


class StaticSearchProvider:
    """Search collaborator that always returns the same result."""

    def __init__(self, result: CompetitorSearchResult):
        self.result = result
        self.requests: list[SearchRequest] = []

    async def search(self, request: SearchRequest) -> CompetitorSearchResult:
        self.requests.append(request)
        return self.result


class StaticResolver:
    """Principal resolver backed by a fixed token table."""

    def __init__(self, principals: dict[str, AuthenticatedPrincipal]):
        self.principals = principals
        self.calls: list[str] = []

    async def resolve(self, token: str) -> Optional[AuthenticatedPrincipal]:
        self.calls.append(token)
        return self.principals.get(token)


def make_request(headers: Optional[dict[str, str]] = None, path: str = "/api/v1/auth/me") -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "query_string": b"",
        "server": ("testserver", 80),
        "headers": [
            (key.lower().encode("latin-1"), value.encode("latin-1"))
            for key, value in (headers or {}).items()
        ],
    }
    return Request(scope)


@pytest.fixture
def search_center() -> GeoPoint:
    """Return the geocoded center of the sample search."""
    return GeoPoint(lat=39.7817, lng=-89.6501)


@pytest.fixture
def sample_competitors() -> list[Competitor]:
    """Return three ranked competitors, closest first."""
    return [
        Competitor(
            id="place_1",
            name="Star Beauty Nails",
            location=GeoPoint(lat=39.7850, lng=-89.6450),
            rating=4.7,
            distance_miles=0.6,
        ),
        Competitor(
            id="place_2",
            name="Luxury Spa Nails",
            location=GeoPoint(lat=39.7700, lng=-89.6600),
            rating=4.0,
            distance_miles=0.9,
        ),
        Competitor(
            id="place_3",
            name="Pretty Hands",
            location=GeoPoint(lat=39.7950, lng=-89.6300),
        ),
    ]


@pytest.fixture
def sample_principal() -> AuthenticatedPrincipal:
    """Return a resolved user."""
    return AuthenticatedPrincipal(
        id="7d1f0c1e-0000-4000-8000-000000000001",
        email="owner@salon.test",
        business_name="Polished Salon",
        business_address="123 Main St, Springfield",
        subscription_tier="pro",
    )


@pytest.fixture
def mock_store() -> MagicMock:
    """Supabase client whose connectivity query returns one row."""
    client = MagicMock()
    query = client.table.return_value.select.return_value.limit.return_value
    query.execute.return_value.data = [{"id": 1}]
    return client
