"""Per-provider circuit breaker backed by the shared key-value store."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

import structlog

from ...storage import KeyValueStore

logger = structlog.get_logger(__name__)

CACHE_PREFIX = "llm_circuit_breaker"


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, rejecting requests
    HALF_OPEN = "half_open"  # Cooldown elapsed, probing recovery


class CircuitBreaker:
    """Circuit breaker for LLM providers.

    State is kept in the shared store under per-provider keys (``status``,
    ``failures``, ``opened_at`` and ``trial``), so every client and every
    worker process talking to the same provider sees one breaker. The
    failure counter is an atomic increment and every status transition is a
    compare-and-set against the status that was read.

    ``closed --threshold failures--> open --recovery elapsed--> half_open``;
    ``half_open`` closes on the next success and reopens on the next failure.
    While half-open only the caller holding the ``trial`` lease is admitted.
    The lease expires after ``request_timeout_seconds`` so a trial call that
    never reports back does not keep the provider blocked.
    """

    def __init__(
        self,
        store: KeyValueStore,
        failure_threshold: int = 5,
        recovery_minutes: float = 10,
        request_timeout_seconds: int = 30,
    ):
        """Initialize circuit breaker.

        Args:
            store: Shared key-value store holding breaker state
            failure_threshold: Number of failures before opening circuit
            recovery_minutes: Minutes to wait before allowing a trial request
            request_timeout_seconds: Upper bound callers apply to a provider call
        """
        self.store = store
        self.failure_threshold = failure_threshold
        self.recovery_minutes = recovery_minutes
        self.request_timeout_seconds = request_timeout_seconds

    @property
    def recovery_seconds(self) -> float:
        """Cooldown in seconds."""
        return self.recovery_minutes * 60

    @staticmethod
    def _key(provider: str, field: str) -> str:
        return f"{CACHE_PREFIX}:{provider}:{field}"

    async def _read_status(self, provider: str) -> tuple[str | None, CircuitState]:
        raw = await self.store.get(self._key(provider, "status"))
        try:
            return raw, CircuitState(raw) if raw else CircuitState.CLOSED
        except ValueError:
            logger.warning("Unknown circuit status in store, treating as closed", provider=provider, status=raw)
            return raw, CircuitState.CLOSED

    async def _opened_at(self, provider: str) -> float | None:
        raw = await self.store.get(self._key(provider, "opened_at"))
        return float(raw) if raw else None

    async def _failure_count(self, provider: str) -> int:
        raw = await self.store.get(self._key(provider, "failures"))
        return int(raw) if raw else 0

    async def is_open(self, provider: str) -> bool:
        """Check whether calls to a provider should be rejected.

        Once the cooldown has elapsed the circuit moves to half-open and this
        returns False for exactly one caller, the one that takes the trial
        lease; every other caller is rejected until that call reports back.

        Args:
            provider: Provider key

        Returns:
            True while the circuit is open, or half-open with the trial taken
        """
        raw, state = await self._read_status(provider)
        if state == CircuitState.CLOSED:
            return False
        if state == CircuitState.HALF_OPEN:
            return not await self._acquire_trial(provider)

        opened_at = await self._opened_at(provider)
        if opened_at is None:
            # Timestamp evicted; restart the cooldown from now
            await self.store.compare_and_set(self._key(provider, "opened_at"), None, repr(time.time()))
            return True
        if time.time() < opened_at + self.recovery_seconds:
            return True

        if await self.store.compare_and_set(self._key(provider, "status"), raw, CircuitState.HALF_OPEN.value):
            logger.info("Circuit breaker half-open, allowing one trial request", provider=provider)
        return not await self._acquire_trial(provider)

    async def _acquire_trial(self, provider: str) -> bool:
        return await self.store.compare_and_set(
            self._key(provider, "trial"), None, repr(time.time()), ttl_seconds=self.request_timeout_seconds
        )

    async def retry_after(self, provider: str) -> float:
        """Seconds left before a rejected caller may be admitted again."""
        _, state = await self._read_status(provider)
        if state == CircuitState.HALF_OPEN:
            return float(self.request_timeout_seconds)
        opened_at = await self._opened_at(provider)
        if opened_at is None:
            return self.recovery_seconds
        return max(0.0, opened_at + self.recovery_seconds - time.time())

    async def record_failure(self, provider: str) -> None:
        """Record a failed provider call.

        Args:
            provider: Provider key
        """
        failure_count = await self.store.increment(self._key(provider, "failures"))
        raw, state = await self._read_status(provider)

        if state == CircuitState.HALF_OPEN:
            if await self._trip(provider, raw):
                logger.warning(
                    "Circuit breaker opened again after failed recovery",
                    provider=provider,
                    failure_count=failure_count,
                )
        elif state == CircuitState.CLOSED and failure_count >= self.failure_threshold:
            if await self._trip(provider, raw):
                logger.warning(
                    "Circuit breaker opened due to failure threshold",
                    provider=provider,
                    failure_count=failure_count,
                    threshold=self.failure_threshold,
                )
        else:
            logger.debug("Circuit breaker failure recorded", provider=provider, failure_count=failure_count)

    async def record_success(self, provider: str) -> None:
        """Record a successful provider call.

        Args:
            provider: Provider key
        """
        raw, state = await self._read_status(provider)

        if state == CircuitState.HALF_OPEN:
            # opened_at is left in place; a trip racing this close owns it
            await self.store.delete(self._key(provider, "failures"))
            if await self.store.compare_and_set(self._key(provider, "status"), raw, CircuitState.CLOSED.value):
                await self.store.delete(self._key(provider, "trial"))
                logger.info("Circuit breaker closed after recovery", provider=provider)
        elif state == CircuitState.CLOSED:
            # Successes erase accumulated failures
            await self.store.delete(self._key(provider, "failures"))

    async def _trip(self, provider: str, expected_raw: str | None) -> bool:
        """Move to OPEN if nobody else changed the status since it was read.

        ``opened_at`` is written first so an open status is never paired with
        the timestamp of a previous cycle.
        """
        await self.store.set(self._key(provider, "opened_at"), repr(time.time()))
        if not await self.store.compare_and_set(self._key(provider, "status"), expected_raw, CircuitState.OPEN.value):
            return False
        await self.store.delete(self._key(provider, "trial"))
        return True

    async def reset(self, provider: str) -> None:
        """Reset circuit breaker to closed state."""
        await self.store.delete(
            self._key(provider, "status"),
            self._key(provider, "failures"),
            self._key(provider, "opened_at"),
            self._key(provider, "trial"),
        )
        logger.info("Circuit breaker reset", provider=provider)

    async def get_status(self, provider: str) -> dict[str, Any]:
        """Get circuit breaker status information.

        Returns:
            Status dictionary with state, failure count, and timing info
        """
        _, state = await self._read_status(provider)
        opened_at = await self._opened_at(provider)
        return {
            "provider": provider,
            "status": state.value,
            "failure_count": await self._failure_count(provider),
            "opened_at": opened_at if state != CircuitState.CLOSED else None,
            "failure_threshold": self.failure_threshold,
            "recovery_minutes": self.recovery_minutes,
        }
