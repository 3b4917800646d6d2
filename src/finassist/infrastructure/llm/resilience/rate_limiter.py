"""Per-(provider, subject) request quota backed by the shared key-value store."""

from __future__ import annotations

import time
from dataclasses import dataclass

import structlog

from ...storage import KeyValueStore

logger = structlog.get_logger(__name__)

CACHE_PREFIX = "llm_rate_limit"
DEFAULT_SUBJECT = "global"


@dataclass(frozen=True)
class RateWindow:
    """Snapshot of one subject's quota window for a provider."""

    provider: str
    subject: str
    count: int
    limit: int
    window_start: float | None
    window_seconds: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    @property
    def resets_at(self) -> float | None:
        if self.window_start is None:
            return None
        return self.window_start + self.window_seconds


class RateLimiter:
    """Windowed request quota for LLM providers.

    A window opens with the first recorded request of a (provider, subject)
    pair and lapses ``window_minutes`` later through the store's TTL; an
    expired window reads as zero requests.
    """

    def __init__(self, store: KeyValueStore, max_requests: int = 100, window_minutes: int = 60):
        """Initialize rate limiter.

        Args:
            store: Shared key-value store holding request windows
            max_requests: Requests allowed per window
            window_minutes: Window length in minutes
        """
        self.store = store
        self.max_requests = max_requests
        self.window_minutes = window_minutes

    @property
    def window_seconds(self) -> int:
        return self.window_minutes * 60

    @staticmethod
    def _key(provider: str, subject: str, field: str) -> str:
        return f"{CACHE_PREFIX}:{provider}:{subject}:{field}"

    async def _count(self, provider: str, subject: str) -> int:
        raw = await self.store.get(self._key(provider, subject, "count"))
        return int(raw) if raw else 0

    async def can_make_request(self, provider: str, subject: str = DEFAULT_SUBJECT) -> bool:
        """Check whether a subject still has quota for a provider."""
        return await self._count(provider, subject) < self.max_requests

    async def record_request(self, provider: str, subject: str = DEFAULT_SUBJECT) -> int:
        """Count a request against the current window.

        Returns:
            Requests recorded in the window, including this one
        """
        ttl = self.window_seconds
        current = await self.store.increment(self._key(provider, subject, "count"), ttl_seconds=ttl)
        if current == 1:
            # Only the request that created the counter opens the window
            await self.store.set(self._key(provider, subject, "start"), repr(time.time()), ttl)

        logger.info(
            "LLM request recorded",
            provider=provider,
            subject=subject,
            current_requests=current,
            max_requests=self.max_requests,
        )
        return current

    async def get_remaining_requests(self, provider: str, subject: str = DEFAULT_SUBJECT) -> int:
        """Requests left in the current window."""
        return max(0, self.max_requests - await self._count(provider, subject))

    async def get_window(self, provider: str, subject: str = DEFAULT_SUBJECT) -> RateWindow:
        """Snapshot of the current window for diagnostics."""
        start = await self.store.get(self._key(provider, subject, "start"))
        return RateWindow(
            provider=provider,
            subject=subject,
            count=await self._count(provider, subject),
            limit=self.max_requests,
            window_start=float(start) if start else None,
            window_seconds=self.window_seconds,
        )
