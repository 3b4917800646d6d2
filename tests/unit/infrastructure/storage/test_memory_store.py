"""Tests for the in-memory key-value store."""

import asyncio
from datetime import timedelta

import pytest

from finassist.infrastructure.storage import InMemoryKeyValueStore, KeyValueStore


class TestInMemoryKeyValueStore:
    """Test cases for InMemoryKeyValueStore."""

    def test_satisfies_protocol(self, store):
        """Test the store implements the KeyValueStore protocol."""
        assert isinstance(store, KeyValueStore)
        assert store.backend_id == "memory"

    @pytest.mark.asyncio
    async def test_get_set_delete(self, store):
        """Test basic reads and writes."""
        assert await store.get("a") is None

        await store.set("a", "1")
        await store.set("b", "2")
        assert await store.get("a") == "1"

        await store.delete("a", "b", "missing")
        assert await store.get("a") is None
        assert await store.get("b") is None

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, store, frozen_time):
        """Test entries vanish once their TTL passes."""
        await store.set("a", "1", ttl_seconds=10)

        frozen_time.tick(timedelta(seconds=9))
        assert await store.get("a") == "1"

        frozen_time.tick(timedelta(seconds=2))
        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_increment_creates_key_with_ttl(self, store, frozen_time):
        """Test the TTL only applies when increment creates the key."""
        assert await store.increment("n", ttl_seconds=60) == 1
        frozen_time.tick(timedelta(seconds=50))
        assert await store.increment("n", ttl_seconds=60) == 2

        frozen_time.tick(timedelta(seconds=11))
        assert await store.get("n") is None
        assert await store.increment("n", amount=5) == 5

    @pytest.mark.asyncio
    async def test_concurrent_increments_are_atomic(self, store):
        """Test parallel increments lose no updates."""
        results = await asyncio.gather(*(store.increment("n") for _ in range(50)))

        assert sorted(results) == list(range(1, 51))
        assert await store.get("n") == "50"

    @pytest.mark.asyncio
    async def test_compare_and_set(self, store):
        """Test writes only succeed against the expected value."""
        assert await store.compare_and_set("k", None, "open") is True
        assert await store.compare_and_set("k", None, "other") is False
        assert await store.compare_and_set("k", "closed", "half_open") is False
        assert await store.compare_and_set("k", "open", "half_open") is True
        assert await store.get("k") == "half_open"

    @pytest.mark.asyncio
    async def test_compare_and_set_treats_expired_as_absent(self, store, frozen_time):
        """Test an expired key matches expected=None."""
        await store.set("k", "v", ttl_seconds=1)
        frozen_time.tick(timedelta(seconds=2))

        assert await store.compare_and_set("k", None, "fresh") is True

    @pytest.mark.asyncio
    async def test_clear_by_prefix(self, store):
        """Test clear removes only keys under the prefix."""
        await store.set("llm:ollama:1", "a")
        await store.set("llm:ollama:2", "b")
        await store.set("llm_rate_limit:ollama:u1:count", "3")

        assert await store.clear("llm:ollama:") == 2
        assert len(store) == 1
        assert await store.clear() == 1

    @pytest.mark.asyncio
    async def test_close_is_noop(self):
        """Test close succeeds without side effects."""
        store = InMemoryKeyValueStore()
        await store.set("a", "1")
        await store.close()

        assert await store.get("a") == "1"
