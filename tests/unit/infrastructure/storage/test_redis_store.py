"""Integration tests for the Redis key-value store.

Skipped unless FINASSIST_TEST_REDIS_URL points at a disposable Redis database.
"""

import asyncio
import os
import uuid

import pytest
import pytest_asyncio

from finassist.infrastructure.llm.resilience import CircuitBreaker, RateLimiter
from finassist.infrastructure.storage import RedisKeyValueStore

REDIS_URL = os.environ.get("FINASSIST_TEST_REDIS_URL")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not REDIS_URL, reason="FINASSIST_TEST_REDIS_URL not set"),
]


@pytest_asyncio.fixture
async def redis_store():
    store = RedisKeyValueStore.from_url(REDIS_URL, prefix=f"finassist-test:{uuid.uuid4().hex}:")
    yield store
    await store.clear()
    await store.close()


class TestRedisKeyValueStore:
    """Test cases for RedisKeyValueStore against a live server."""

    @pytest.mark.asyncio
    async def test_get_set_delete(self, redis_store):
        """Test basic reads and writes."""
        await redis_store.set("a", "1")
        assert await redis_store.get("a") == "1"

        await redis_store.delete("a")
        assert await redis_store.get("a") is None

    @pytest.mark.asyncio
    async def test_increment_sets_ttl_only_on_create(self, redis_store):
        """Test the create-aware increment script."""
        assert await redis_store.increment("n", ttl_seconds=60) == 1
        assert await redis_store.increment("n", ttl_seconds=1) == 2

        ttl_ms = await redis_store._redis.pttl(redis_store._key("n"))
        assert ttl_ms > 1000

    @pytest.mark.asyncio
    async def test_concurrent_increments_are_atomic(self, redis_store):
        """Test parallel increments lose no updates."""
        results = await asyncio.gather(*(redis_store.increment("n") for _ in range(25)))

        assert sorted(results) == list(range(1, 26))

    @pytest.mark.asyncio
    async def test_compare_and_set(self, redis_store):
        """Test the compare-and-set script."""
        assert await redis_store.compare_and_set("k", None, "open") is True
        assert await redis_store.compare_and_set("k", None, "x") is False
        assert await redis_store.compare_and_set("k", "open", "half_open") is True
        assert await redis_store.get("k") == "half_open"

    @pytest.mark.asyncio
    async def test_breaker_and_limiter_on_redis(self, redis_store):
        """Test the policies run unchanged on the Redis backend."""
        breaker = CircuitBreaker(redis_store, failure_threshold=2)
        limiter = RateLimiter(redis_store, max_requests=1)

        await breaker.record_failure("ollama")
        await breaker.record_failure("ollama")
        await limiter.record_request("ollama", "u1")

        assert await breaker.is_open("ollama") is True
        assert await limiter.can_make_request("ollama", "u1") is False
