"""Shared key-value store contract used by the breaker, limiter and response cache."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Async key-value store with TTL, atomic increment and compare-and-set.

    Values are strings. Every process holding the same store sees the same
    keys, so implementations must make ``increment`` and ``compare_and_set``
    atomic with respect to concurrent callers.
    """

    backend_id: str

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None: ...

    async def delete(self, *keys: str) -> None: ...

    async def increment(self, key: str, amount: int = 1, ttl_seconds: float | None = None) -> int:
        """Add ``amount`` to an integer key and return the new value.

        ``ttl_seconds`` only applies when this call creates the key.
        """
        ...

    async def compare_and_set(
        self,
        key: str,
        expected: str | None,
        value: str,
        ttl_seconds: float | None = None,
    ) -> bool:
        """Write ``value`` only if the current value equals ``expected``.

        ``expected=None`` means "only if the key is absent".
        """
        ...

    async def clear(self, prefix: str = "") -> int: ...

    async def close(self) -> None: ...
