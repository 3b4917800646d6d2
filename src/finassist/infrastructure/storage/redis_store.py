"""Redis-backed key-value store for multi-process deployments."""

from __future__ import annotations

import math

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from ...core.exceptions import StoreError
from .base import KeyValueStore

logger = structlog.get_logger(__name__)

# KEYS[1]=key ARGV[1]=amount ARGV[2]=ttl_ms (0 = none)
_INCREMENT_SCRIPT = """
local existed = redis.call('EXISTS', KEYS[1])
local value = redis.call('INCRBY', KEYS[1], ARGV[1])
if existed == 0 and tonumber(ARGV[2]) > 0 then
    redis.call('PEXPIRE', KEYS[1], ARGV[2])
end
return value
"""

# KEYS[1]=key ARGV[1]=expect_absent flag ARGV[2]=expected ARGV[3]=value ARGV[4]=ttl_ms
_COMPARE_AND_SET_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if ARGV[1] == '1' then
    if current then return 0 end
elseif current ~= ARGV[2] then
    return 0
end
if tonumber(ARGV[4]) > 0 then
    redis.call('SET', KEYS[1], ARGV[3], 'PX', ARGV[4])
else
    redis.call('SET', KEYS[1], ARGV[3])
end
return 1
"""


def _ttl_ms(ttl_seconds: float | None) -> int:
    return int(math.ceil(ttl_seconds * 1000)) if ttl_seconds else 0


class RedisKeyValueStore(KeyValueStore):
    """Store keys in Redis so every worker shares breaker, limiter and cache state."""

    backend_id = "redis"

    def __init__(self, redis_client: aioredis.Redis, prefix: str = "") -> None:
        self._redis = redis_client
        self._prefix = prefix
        self._increment = redis_client.register_script(_INCREMENT_SCRIPT)
        self._compare_and_set = redis_client.register_script(_COMPARE_AND_SET_SCRIPT)

    @classmethod
    def from_url(cls, url: str, prefix: str = "") -> RedisKeyValueStore:
        """Create a store from a redis:// URL."""
        return cls(aioredis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    @staticmethod
    def _decode(value: str | bytes | None) -> str | None:
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def get(self, key: str) -> str | None:
        try:
            return self._decode(await self._redis.get(self._key(key)))
        except RedisError as e:
            raise StoreError(f"Redis GET failed: {e}") from e

    async def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None:
        try:
            ttl_ms = _ttl_ms(ttl_seconds)
            await self._redis.set(self._key(key), value, px=ttl_ms or None)
        except RedisError as e:
            raise StoreError(f"Redis SET failed: {e}") from e

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self._redis.delete(*(self._key(key) for key in keys))
        except RedisError as e:
            raise StoreError(f"Redis DEL failed: {e}") from e

    async def increment(self, key: str, amount: int = 1, ttl_seconds: float | None = None) -> int:
        try:
            value = await self._increment(keys=[self._key(key)], args=[amount, _ttl_ms(ttl_seconds)])
        except RedisError as e:
            raise StoreError(f"Redis INCRBY failed: {e}") from e
        return int(value)

    async def compare_and_set(
        self,
        key: str,
        expected: str | None,
        value: str,
        ttl_seconds: float | None = None,
    ) -> bool:
        args = ["1" if expected is None else "0", expected or "", value, _ttl_ms(ttl_seconds)]
        try:
            result = await self._compare_and_set(keys=[self._key(key)], args=args)
        except RedisError as e:
            raise StoreError(f"Redis compare-and-set failed: {e}") from e
        return int(result) == 1

    async def clear(self, prefix: str = "") -> int:
        removed = 0
        try:
            async for key in self._redis.scan_iter(match=f"{self._key(prefix)}*"):
                removed += await self._redis.delete(key)
        except RedisError as e:
            raise StoreError(f"Redis SCAN failed: {e}") from e
        logger.info("Store keys cleared", backend=self.backend_id, prefix=prefix, removed=removed)
        return removed

    async def close(self) -> None:
        await self._redis.aclose()
