"""
Authentication: principal model, the authenticated request gate and
per-principal rate limiting.

Token issuance and password handling belong to Supabase Auth; this package only
resolves an incoming bearer token into an ``AuthenticatedPrincipal`` and meters
how often that principal may call in.
"""

from src.auth.gate import (
    AuthGate,
    PrincipalResolver,
    SupabasePrincipalResolver,
    extract_bearer_token,
    with_auth,
)
from src.auth.principal import AuthenticatedPrincipal, AuthenticatedRequest
from src.auth.rate_limit import RateLimitGate, TierLimits, with_auth_and_rate_limit

__all__ = [
    "AuthGate",
    "PrincipalResolver",
    "SupabasePrincipalResolver",
    "extract_bearer_token",
    "with_auth",
    "AuthenticatedPrincipal",
    "AuthenticatedRequest",
    "RateLimitGate",
    "TierLimits",
    "with_auth_and_rate_limit",
]
