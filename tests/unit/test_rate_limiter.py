"""Unit tests for rate limiters and the rate limit gate."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from starlette.responses import PlainTextResponse

from src.auth.gate import AuthGate
from src.auth.principal import AuthenticatedPrincipal, AuthenticatedRequest
from src.auth.rate_limit import (
    RateLimitGate,
    TierLimits,
    client_identifier,
    with_auth_and_rate_limit,
)
from src.core.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitResult,
    get_rate_limiter,
    reset_rate_limiter,
    window_outcome,
)
from src.core.redis_rate_limit import RedisRateLimiter
from tests.conftest import StaticResolver, make_request


class TestWindowOutcome:
    """Decision arithmetic shared by both backends."""

    def test_under_limit_consumes_one(self):
        result = window_outcome(current_count=2, oldest=100.0, limit=5, window=60, now=120.0)

        assert result.allowed is True
        assert result.remaining == 2
        assert result.reset_at == 160.0

    def test_at_limit_refuses_with_retry_after(self):
        result = window_outcome(current_count=5, oldest=100.0, limit=5, window=60, now=130.0)

        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after == 30.0

    def test_headers(self):
        refused = RateLimitResult(
            allowed=False, limit=5, remaining=0, reset_at=1700000030.7, retry_after=29.4
        )

        assert refused.headers() == {
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": "1700000030",
            "Retry-After": "29",
        }


class TestInMemoryRateLimiter:
    """In-memory sliding window."""

    @pytest.fixture
    def limiter(self):
        """Fresh rate limiter for each test."""
        return InMemoryRateLimiter()

    @pytest.mark.asyncio
    async def test_allows_requests_under_limit(self, limiter):
        result = await limiter.is_allowed("user:1", limit=5, window=60)

        assert result.allowed is True
        assert result.remaining == 4
        assert result.limit == 5

    @pytest.mark.asyncio
    async def test_blocks_requests_over_limit(self, limiter):
        for _ in range(5):
            await limiter.is_allowed("user:1", limit=5, window=60)

        result = await limiter.is_allowed("user:1", limit=5, window=60)

        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after > 0

    @pytest.mark.asyncio
    async def test_different_identifiers_independent(self, limiter):
        for _ in range(5):
            await limiter.is_allowed("user:A", limit=5, window=60)

        result = await limiter.is_allowed("user:B", limit=5, window=60)

        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_hits_expire_with_the_window(self, limiter):
        with patch("src.core.rate_limiter.time.time", return_value=1000.0):
            for _ in range(2):
                await limiter.is_allowed("user:1", limit=2, window=60)
        with patch("src.core.rate_limiter.time.time", return_value=1061.0):
            result = await limiter.is_allowed("user:1", limit=2, window=60)

        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_reset_clears_limit(self, limiter):
        for _ in range(5):
            await limiter.is_allowed("user:1", limit=5, window=60)

        await limiter.reset("user:1")

        result = await limiter.is_allowed("user:1", limit=5, window=60)
        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_concurrent_requests_respect_limit(self, limiter):
        results = await asyncio.gather(
            *[limiter.is_allowed("concurrent", limit=5, window=60) for _ in range(10)]
        )

        assert sum(1 for r in results if r.allowed) == 5


class TestRedisRateLimiter:
    """Redis backend against a mocked client."""

    @staticmethod
    def _client(count: int, oldest: list):
        client = MagicMock()
        client.ping = AsyncMock()
        client.aclose = AsyncMock()
        client.delete = AsyncMock()
        read, write = MagicMock(), MagicMock()
        read.execute = AsyncMock(return_value=[0, count, oldest])
        write.execute = AsyncMock(return_value=[1, True])
        client.pipeline.side_effect = [read, write]
        return client, write

    @pytest.mark.asyncio
    async def test_allowed_hit_is_recorded(self):
        client, write = self._client(count=1, oldest=[("100.0:a", 100.0)])
        limiter = RedisRateLimiter("redis://localhost:6379")

        with patch("src.core.redis_rate_limit.redis.from_url", return_value=client):
            await limiter.connect()
            result = await limiter.is_allowed("user:1", limit=3, window=3600)

        assert result.allowed is True
        assert result.remaining == 1
        assert result.reset_at == 3700.0
        write.zadd.assert_called_once()
        assert write.zadd.call_args.args[0] == "rivalmap:ratelimit:user:1"
        write.expire.assert_called_once_with("rivalmap:ratelimit:user:1", 3660)

    @pytest.mark.asyncio
    async def test_refused_hit_is_not_recorded(self):
        client, write = self._client(count=3, oldest=[("100.0:a", 100.0)])
        limiter = RedisRateLimiter("redis://localhost:6379")

        with patch("src.core.redis_rate_limit.redis.from_url", return_value=client):
            await limiter.connect()
            result = await limiter.is_allowed("user:1", limit=3, window=3600)

        assert result.allowed is False
        write.zadd.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_connection(self):
        with pytest.raises(RuntimeError):
            await RedisRateLimiter("redis://localhost:6379").is_allowed("x", limit=1, window=1)

    @pytest.mark.asyncio
    async def test_failed_ping_closes_client(self):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=ConnectionError("Connection refused"))
        client.aclose = AsyncMock()
        limiter = RedisRateLimiter("redis://localhost:6379")

        with patch("src.core.redis_rate_limit.redis.from_url", return_value=client):
            with pytest.raises(ConnectionError):
                await limiter.connect()

        client.aclose.assert_awaited_once()
        assert limiter.is_connected is False


class TestRateLimiterFactory:
    """Rate limiter factory function."""

    @pytest_asyncio.fixture(autouse=True)
    async def cleanup(self):
        """Reset global limiter after each test."""
        yield
        await reset_rate_limiter()

    @pytest.mark.asyncio
    async def test_returns_in_memory_when_no_redis(self):
        mock_settings = MagicMock()
        mock_settings.redis_url = None

        limiter = await get_rate_limiter(mock_settings)

        assert isinstance(limiter, InMemoryRateLimiter)

    @pytest.mark.asyncio
    async def test_returns_redis_when_configured(self):
        mock_settings = MagicMock()
        mock_settings.redis_url = "redis://localhost:6379"

        with patch("src.core.redis_rate_limit.RedisRateLimiter") as MockRedis:
            mock_instance = AsyncMock()
            MockRedis.return_value = mock_instance

            limiter = await get_rate_limiter(mock_settings)

        assert limiter is mock_instance
        mock_instance.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_falls_back_to_memory_on_redis_error(self):
        mock_settings = MagicMock()
        mock_settings.redis_url = "redis://localhost:6379"

        with patch("src.core.redis_rate_limit.RedisRateLimiter") as MockRedis:
            mock_instance = AsyncMock()
            mock_instance.connect = AsyncMock(side_effect=Exception("Connection refused"))
            MockRedis.return_value = mock_instance

            limiter = await get_rate_limiter(mock_settings)

        assert isinstance(limiter, InMemoryRateLimiter)

    @pytest.mark.asyncio
    async def test_reuses_existing_instance(self):
        mock_settings = MagicMock()
        mock_settings.redis_url = None

        limiter1 = await get_rate_limiter(mock_settings)
        limiter2 = await get_rate_limiter(mock_settings)

        assert limiter1 is limiter2


class TestTierLimits:
    @pytest.mark.parametrize(
        "tier,expected",
        [("free", 1), ("pro", 2), ("enterprise", 3), ("platinum", 1), ("", 1)],
    )
    def test_for_tier(self, tier, expected):
        assert TierLimits(free=1, pro=2, enterprise=3).for_tier(tier) == expected

    def test_client_identifier_prefers_forwarded_for(self):
        request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

        assert client_identifier(request) == "203.0.113.7"
        assert client_identifier(make_request()) == "unknown"


class TestRateLimitGate:
    """Admission rules for principals and anonymous clients."""

    LIMITS = TierLimits(free=1, pro=2, enterprise=3)

    @pytest.fixture
    def handler(self):
        return AsyncMock(return_value=PlainTextResponse("handled"))

    @pytest.fixture
    def gate(self):
        return RateLimitGate(InMemoryRateLimiter(), self.LIMITS, window_seconds=60)

    @staticmethod
    def _auth_request(principal: AuthenticatedPrincipal) -> AuthenticatedRequest:
        return AuthenticatedRequest(request=make_request(), principal=principal)

    @pytest.mark.asyncio
    async def test_allowed_response_carries_headers(self, gate, handler, sample_principal):
        response = await gate(self._auth_request(sample_principal), handler)

        handler.assert_awaited_once()
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Remaining"] == "1"
        assert "X-RateLimit-Reset" in response.headers

    @pytest.mark.asyncio
    async def test_tier_allowance_then_429(self, gate, handler, sample_principal):
        auth_request = self._auth_request(sample_principal)

        statuses = [(await gate(auth_request, handler)).status_code for _ in range(3)]

        assert statuses == [200, 200, 429]
        assert handler.await_count == 2

    @pytest.mark.asyncio
    async def test_refusal_envelope(self, gate, handler, sample_principal):
        free_user = sample_principal.model_copy(update={"subscription_tier": "free"})
        await gate(self._auth_request(free_user), handler)

        response = await gate(self._auth_request(free_user), handler)

        assert response.status_code == 429
        assert json.loads(response.body) == {
            "success": False,
            "error": {
                "message": "Rate limit exceeded. Please try again later.",
                "code": "RATE_LIMIT_EXCEEDED",
            },
        }
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert int(response.headers["Retry-After"]) >= 1

    @pytest.mark.asyncio
    async def test_principals_counted_separately(self, gate, handler, sample_principal):
        other = sample_principal.model_copy(update={"id": "someone-else", "subscription_tier": "free"})
        free_user = sample_principal.model_copy(update={"subscription_tier": "free"})

        first = await gate(self._auth_request(free_user), handler)
        second = await gate(self._auth_request(other), handler)

        assert (first.status_code, second.status_code) == (200, 200)

    @pytest.mark.asyncio
    async def test_anonymous_clients_keyed_by_address(self, gate):
        call = AsyncMock(return_value=PlainTextResponse("handled"))
        alice = make_request({"X-Forwarded-For": "198.51.100.1"})
        bob = make_request({"X-Forwarded-For": "198.51.100.2"})

        assert (await gate.guard(alice, call)).status_code == 200
        assert (await gate.guard(alice, call)).status_code == 429
        assert (await gate.guard(bob, call)).status_code == 200

    @pytest.mark.asyncio
    async def test_limiter_failure_lets_request_through(self, handler, sample_principal):
        limiter = MagicMock()
        limiter.is_allowed = AsyncMock(side_effect=ConnectionError("redis down"))
        gate = RateLimitGate(limiter, self.LIMITS)

        response = await gate(self._auth_request(sample_principal), handler)

        handler.assert_awaited_once()
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers


class TestWithAuthAndRateLimit:
    """Composition: authentication first, then rate limiting."""

    @pytest.mark.asyncio
    async def test_unauthenticated_request_never_consumes_allowance(self):
        limiter = MagicMock()
        limiter.is_allowed = AsyncMock()
        handler = AsyncMock(return_value=PlainTextResponse("handled"))

        response = await with_auth_and_rate_limit(
            make_request(),
            handler,
            AuthGate(StaticResolver({})),
            RateLimitGate(limiter),
        )

        assert response.status_code == 401
        limiter.is_allowed.assert_not_awaited()
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authenticated_request_is_limited_by_user(self, sample_principal):
        limiter = InMemoryRateLimiter()
        handler = AsyncMock(return_value=PlainTextResponse("handled"))

        response = await with_auth_and_rate_limit(
            make_request({"Authorization": "Bearer ok"}),
            handler,
            AuthGate(StaticResolver({"ok": sample_principal})),
            RateLimitGate(limiter, TierLimits(free=1, pro=2, enterprise=3)),
        )

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "2"
        passed = handler.await_args.args[0]
        assert passed.principal == sample_principal
        assert f"user:{sample_principal.id}" in limiter._hits
