"""FastAPI dependency injection providers.

This module provides dependency functions for injecting services into route handlers.
"""

from typing import Optional

from fastapi import Depends
from supabase import create_client, Client

from src.auth.gate import AuthGate, PrincipalResolver, SupabasePrincipalResolver
from src.auth.rate_limit import RateLimitGate, TierLimits
from src.config.settings import Settings, get_settings
from src.core.exceptions import ConfigurationError, DependencyError
from src.core.rate_limiter import get_rate_limiter
from src.maps.sinks import HtmlMapSink, MapSink
from src.search.provider import CompetitorSearchProvider

# Global instances for singleton pattern
_supabase_client: Optional[Client] = None
_principal_resolver: Optional[PrincipalResolver] = None
_competitor_search: Optional[CompetitorSearchProvider] = None
_map_sink: Optional[MapSink] = None


def get_supabase() -> Client:
    """
    Get Supabase client instance.

    Uses a singleton pattern to reuse the same client across requests.

    Raises:
        ConfigurationError: If the Supabase URL or key is blank.
    """
    global _supabase_client

    if _supabase_client is None:
        settings = get_settings()
        key = settings.supabase_key.get_secret_value()
        if not settings.supabase_url or not key:
            raise ConfigurationError("Supabase is not configured", config_key="supabase_url")
        _supabase_client = create_client(settings.supabase_url, key)

    return _supabase_client


def get_principal_resolver() -> PrincipalResolver:
    """Get the principal resolver, defaulting to Supabase Auth."""
    global _principal_resolver

    if _principal_resolver is None:
        _principal_resolver = SupabasePrincipalResolver(get_supabase)

    return _principal_resolver


def set_principal_resolver(resolver: Optional[PrincipalResolver]) -> None:
    """Replace the principal resolver (startup wiring or tests)."""
    global _principal_resolver
    _principal_resolver = resolver


def get_auth_gate(
    resolver: PrincipalResolver = Depends(get_principal_resolver),
    settings: Settings = Depends(get_settings),
) -> AuthGate:
    """Build an auth gate bound to the configured resolver and timeout."""
    return AuthGate(resolver, timeout_seconds=settings.auth_timeout_seconds)


async def get_rate_limit_gate(settings: Settings = Depends(get_settings)) -> RateLimitGate:
    """Build a rate limit gate over the process-wide limiter and configured tiers."""
    limiter = await get_rate_limiter(settings)
    return RateLimitGate(
        limiter,
        TierLimits.from_settings(settings),
        window_seconds=settings.rate_limit_window_seconds,
    )


def get_competitor_search() -> CompetitorSearchProvider:
    """
    Get the competitor search collaborator.

    Raises:
        DependencyError: If no provider has been registered.
    """
    if _competitor_search is None:
        raise DependencyError("competitor_search", "No competitor search provider is configured")
    return _competitor_search


def set_competitor_search(provider: Optional[CompetitorSearchProvider]) -> None:
    """
    Register the competitor search collaborator.

    Called during application startup (or by tests) with any object
    implementing ``CompetitorSearchProvider``.
    """
    global _competitor_search
    _competitor_search = provider


def get_map_sink() -> MapSink:
    """Get the map sink used for HTML map output."""
    global _map_sink

    if _map_sink is None:
        _map_sink = HtmlMapSink()

    return _map_sink


def reset_dependencies() -> None:
    """
    Reset all global dependency instances.

    Useful for testing or application shutdown.
    """
    global _supabase_client, _principal_resolver, _competitor_search, _map_sink
    _supabase_client = None
    _principal_resolver = None
    _competitor_search = None
    _map_sink = None
