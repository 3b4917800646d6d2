"""Process-local key-value store for tests and single-worker deployments."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from .base import KeyValueStore


@dataclass(slots=True)
class _Entry:
    value: str
    expires_at: float | None = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store with lazy expiry.

    A lock guards every read-modify-write so the store stays atomic when it is
    shared between threads as well as coroutines.
    """

    backend_id = "memory"

    def __init__(self) -> None:
        self._rows: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _live(self, key: str, now: float) -> _Entry | None:
        entry = self._rows.get(key)
        if entry is None:
            return None
        if entry.expired(now):
            del self._rows[key]
            return None
        return entry

    @staticmethod
    def _expiry(now: float, ttl_seconds: float | None) -> float | None:
        return now + ttl_seconds if ttl_seconds else None

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live(key, time.time())
            return entry.value if entry else None

    async def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None:
        now = time.time()
        with self._lock:
            self._rows[key] = _Entry(value=value, expires_at=self._expiry(now, ttl_seconds))

    async def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._rows.pop(key, None)

    async def increment(self, key: str, amount: int = 1, ttl_seconds: float | None = None) -> int:
        now = time.time()
        with self._lock:
            entry = self._live(key, now)
            if entry is None:
                entry = _Entry(value="0", expires_at=self._expiry(now, ttl_seconds))
                self._rows[key] = entry
            new_value = int(entry.value) + amount
            entry.value = str(new_value)
            return new_value

    async def compare_and_set(
        self,
        key: str,
        expected: str | None,
        value: str,
        ttl_seconds: float | None = None,
    ) -> bool:
        now = time.time()
        with self._lock:
            entry = self._live(key, now)
            current = entry.value if entry else None
            if current != expected:
                return False
            self._rows[key] = _Entry(value=value, expires_at=self._expiry(now, ttl_seconds))
            return True

    async def clear(self, prefix: str = "") -> int:
        with self._lock:
            doomed = [key for key in self._rows if key.startswith(prefix)]
            for key in doomed:
                del self._rows[key]
            return len(doomed)

    async def close(self) -> None:
        return None

    def __len__(self) -> int:
        now = time.time()
        with self._lock:
            return sum(1 for entry in self._rows.values() if not entry.expired(now))
