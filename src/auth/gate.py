"""Authenticated request gate.

Wraps a handler so it only ever runs with a resolved principal:

    gate = AuthGate(SupabasePrincipalResolver(get_supabase), timeout_seconds=5)
    response = await gate(request, handler)

Resolution is a separate step (``AuthGate.authenticate``) so it can be tested on its
own. Missing or rejected credentials short-circuit with a 401 envelope; an
identity-store failure short-circuits with a 503 envelope. In both cases the
handler is not called and the underlying error is only logged.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Protocol, runtime_checkable

import structlog
from fastapi import Request, Response
from supabase import AuthApiError, Client

from src.auth.principal import AuthenticatedPrincipal, AuthenticatedRequest
from src.core.exceptions import (
    AuthenticationError,
    DependencyError,
    DependencyTimeoutError,
    sanitize_error_message,
)
from src.core.responses import service_unavailable_response, unauthorized_response
from src.monitoring.metrics import AUTH_OUTCOMES

logger = structlog.get_logger(__name__)

COMPONENT = "identity"
BEARER_PREFIX = "bearer "

Handler = Callable[[AuthenticatedRequest], Awaitable[Response]]


def extract_bearer_token(request: Request) -> Optional[str]:
    """Return the token from ``Authorization: Bearer <token>``, if present."""
    header = request.headers.get("authorization")
    if not header or not header.lower().startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


@runtime_checkable
class PrincipalResolver(Protocol):
    """Turns a credential into a principal.

    Returns None when the credential is missing, invalid or expired.
    Raises DependencyError when the identity store itself fails.
    """

    async def resolve(self, token: str) -> Optional[AuthenticatedPrincipal]:
        ...


class SupabasePrincipalResolver:
    """Resolves bearer tokens with Supabase Auth."""

    def __init__(self, client_factory: Callable[[], Client]) -> None:
        self._client_factory = client_factory

    async def resolve(self, token: str) -> Optional[AuthenticatedPrincipal]:
        try:
            client = self._client_factory()
            response = await asyncio.to_thread(client.auth.get_user, token)
        except AuthApiError as e:
            if e.status is not None and 400 <= e.status < 500:
                logger.info("token_rejected", status=e.status)
                return None
            raise DependencyError(COMPONENT, sanitize_error_message(e)) from e
        except Exception as e:
            raise DependencyError(COMPONENT, sanitize_error_message(e)) from e

        if response is None or response.user is None:
            return None
        return AuthenticatedPrincipal.from_supabase_user(response.user)


class AuthGate:
    """Interceptor that injects a principal into a handler call."""

    def __init__(self, resolver: PrincipalResolver, timeout_seconds: float = 5.0) -> None:
        self.resolver = resolver
        self.timeout_seconds = timeout_seconds

    async def resolve(self, token: str) -> Optional[AuthenticatedPrincipal]:
        """
        Resolve one token, bounded by the gate timeout.

        Raises:
            DependencyTimeoutError: The identity store did not answer in time.
            DependencyError: The identity store failed.
        """
        try:
            return await asyncio.wait_for(
                self.resolver.resolve(token),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise DependencyTimeoutError(COMPONENT, self.timeout_seconds)
        except DependencyError:
            raise
        except Exception as e:
            raise DependencyError(COMPONENT, sanitize_error_message(e)) from e

    async def authenticate(self, request: Request) -> AuthenticatedPrincipal:
        """
        Resolve the principal behind ``request``.

        Raises:
            AuthenticationError: No bearer token, or the token was rejected.
            DependencyError: The identity store failed or timed out.
        """
        token = extract_bearer_token(request)
        if token is None:
            raise AuthenticationError("Missing or invalid authorization header")

        principal = await self.resolve(token)
        if principal is None:
            raise AuthenticationError("Invalid or expired token")
        return principal

    async def try_authenticate(self, request: Request) -> Optional[AuthenticatedPrincipal]:
        """Like ``authenticate``, but anonymous (None) instead of raising."""
        try:
            return await self.authenticate(request)
        except AuthenticationError:
            return None
        except DependencyError as e:
            logger.warning("optional_authentication_unavailable", error=e.message)
            return None

    async def __call__(self, request: Request, handler: Handler) -> Response:
        try:
            principal = await self.authenticate(request)
        except AuthenticationError as e:
            AUTH_OUTCOMES.labels(outcome="unauthorized").inc()
            logger.warning("authentication_rejected", path=request.url.path, reason=e.message)
            return unauthorized_response(e.message)
        except DependencyError as e:
            AUTH_OUTCOMES.labels(outcome="unavailable").inc()
            logger.error(
                "principal_resolution_failed",
                path=request.url.path,
                error=e.message,
                error_type=type(e).__name__,
            )
            return service_unavailable_response(
                "Authentication service unavailable",
                "AUTH_UNAVAILABLE",
            )

        AUTH_OUTCOMES.labels(outcome="authenticated").inc()
        return await handler(AuthenticatedRequest(request=request, principal=principal))


async def with_auth(
    request: Request,
    handler: Handler,
    resolver: PrincipalResolver,
    timeout_seconds: float = 5.0,
) -> Response:
    """Functional form of ``AuthGate``."""
    return await AuthGate(resolver, timeout_seconds)(request, handler)
