"""Per-principal rate limiting.

Runs after the auth gate: an authenticated caller is limited by user id with
the allowance of their subscription tier; an anonymous caller is limited by
client address with the free-tier allowance.

    rate_gate = RateLimitGate(limiter, TierLimits.from_settings(settings))
    response = await with_auth_and_rate_limit(request, handler, auth_gate, rate_gate)

Allowed responses carry ``X-RateLimit-Limit``, ``X-RateLimit-Remaining`` and
``X-RateLimit-Reset``. Refused requests get a 429 envelope plus ``Retry-After``
and never reach the handler. If the limiter itself fails the request goes
through unlimited.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import structlog
from fastapi import Request, Response

from src.auth.gate import AuthGate, Handler
from src.auth.principal import AuthenticatedPrincipal, AuthenticatedRequest
from src.config.settings import Settings
from src.core.rate_limiter import RateLimiter, RateLimitResult
from src.core.responses import rate_limited_response
from src.monitoring.metrics import RATE_LIMIT_DECISIONS

logger = structlog.get_logger(__name__)

DEFAULT_WINDOW_SECONDS = 3600


@dataclass(frozen=True)
class TierLimits:
    """Requests allowed per window for each subscription tier."""

    free: int = 100
    pro: int = 1000
    enterprise: int = 10000

    @classmethod
    def from_settings(cls, settings: Settings) -> "TierLimits":
        return cls(
            free=settings.rate_limit_free,
            pro=settings.rate_limit_pro,
            enterprise=settings.rate_limit_enterprise,
        )

    def for_tier(self, tier: str) -> int:
        """Allowance for ``tier``; unknown tiers get the free allowance."""
        return {"free": self.free, "pro": self.pro, "enterprise": self.enterprise}.get(
            tier, self.free
        )


def client_identifier(request: Request) -> str:
    """First ``X-Forwarded-For`` hop when behind a proxy, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitGate:
    """Interceptor that admits or refuses a call based on a sliding window."""

    def __init__(
        self,
        limiter: RateLimiter,
        limits: TierLimits = TierLimits(),
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
    ) -> None:
        self.limiter = limiter
        self.limits = limits
        self.window_seconds = window_seconds

    async def check(self, identifier: str, limit: int) -> Optional[RateLimitResult]:
        """Consume one hit for ``identifier``. Returns None if the limiter failed."""
        try:
            return await self.limiter.is_allowed(identifier, limit, self.window_seconds)
        except Exception as e:
            logger.error(
                "rate_limit_check_failed",
                identifier=identifier,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def guard(
        self,
        request: Request,
        call: Callable[[], Awaitable[Response]],
        principal: Optional[AuthenticatedPrincipal] = None,
    ) -> Response:
        """Run ``call`` if the caller still has allowance in the current window."""
        if principal is not None:
            subject = "user"
            identifier = f"user:{principal.id}"
            limit = self.limits.for_tier(principal.subscription_tier)
        else:
            subject = "client"
            identifier = f"ip:{client_identifier(request)}"
            limit = self.limits.free

        result = await self.check(identifier, limit)
        if result is None:
            RATE_LIMIT_DECISIONS.labels(subject=subject, decision="bypassed").inc()
            return await call()

        if not result.allowed:
            RATE_LIMIT_DECISIONS.labels(subject=subject, decision="limited").inc()
            logger.warning(
                "rate_limit_exceeded",
                identifier=identifier,
                path=request.url.path,
                limit=limit,
                retry_after=result.retry_after,
            )
            return rate_limited_response(result.headers())

        RATE_LIMIT_DECISIONS.labels(subject=subject, decision="allowed").inc()
        response = await call()
        response.headers.update(result.headers())
        return response

    async def __call__(self, auth_request: AuthenticatedRequest, handler: Handler) -> Response:
        return await self.guard(
            auth_request.request,
            lambda: handler(auth_request),
            auth_request.principal,
        )


async def with_auth_and_rate_limit(
    request: Request,
    handler: Handler,
    auth_gate: AuthGate,
    rate_gate: RateLimitGate,
) -> Response:
    """Authenticate, then rate limit by principal, then call ``handler``."""

    async def limited(auth_request: AuthenticatedRequest) -> Response:
        return await rate_gate(auth_request, handler)

    return await auth_gate(request, limited)
