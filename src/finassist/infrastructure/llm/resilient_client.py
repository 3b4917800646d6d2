"""Admission control and failure accounting around an ``LlmClient``."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from ...core.exceptions import CircuitOpenError, GenerationError, MalformedOutputError, RateLimitExceededError
from ..monitoring import LlmMetrics
from .client import LlmClient
from .resilience import CircuitBreaker, RateLimiter, RetryHandler
from .resilience.rate_limiter import DEFAULT_SUBJECT

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class ResilientLlmClient:
    """LLM client guarded by a rate limiter and a circuit breaker.

    Every call is admitted in a fixed order: the subject's quota is checked
    first, then the provider's breaker, then the response cache. A cache hit
    returns without counting against the quota; a miss records the request
    and calls the provider, feeding the outcome back to the breaker.
    Rejections raise ``RateLimitExceededError`` or ``CircuitOpenError``
    before the adapter is touched.
    """

    def __init__(
        self,
        client: LlmClient,
        circuit_breaker: CircuitBreaker,
        rate_limiter: RateLimiter,
        metrics: LlmMetrics | None = None,
        retry_handler: RetryHandler | None = None,
    ):
        """Initialize the wrapper.

        Args:
            client: Client doing caching and generation
            circuit_breaker: Breaker shared by every client of the provider
            rate_limiter: Quota shared by every client of the provider
            metrics: Optional metrics sink
            retry_handler: Optional retry policy for transient provider errors
        """
        self.client = client
        self.circuit_breaker = circuit_breaker
        self.rate_limiter = rate_limiter
        self.metrics = metrics
        self.retry_handler = retry_handler

    @property
    def provider(self) -> str:
        return self.client.provider

    @property
    def model(self) -> str:
        return self.client.model

    @staticmethod
    def _split_subject(options: dict[str, Any] | None) -> tuple[str, dict[str, Any]]:
        """Pull ``user_id`` out of the options; it selects the quota, not the generation."""
        options = dict(options or {})
        user_id = options.pop("user_id", None)
        return (str(user_id) if user_id else DEFAULT_SUBJECT), options

    async def _admit(self, subject: str) -> None:
        """Raise if the subject is over quota or the provider's circuit is open."""
        provider = self.provider

        if not await self.rate_limiter.can_make_request(provider, subject):
            logger.warning("LLM rate limit exceeded", provider=provider, subject=subject)
            if self.metrics:
                self.metrics.record_rejection(provider, "rate_limit")
            raise RateLimitExceededError(provider, subject, self.rate_limiter.max_requests)

        if await self.circuit_breaker.is_open(provider):
            status = await self.circuit_breaker.get_status(provider)
            logger.warning("LLM circuit breaker is open", provider=provider, failure_count=status["failure_count"])
            if self.metrics:
                self.metrics.record_rejection(provider, "circuit_open")
                self.metrics.set_circuit_breaker_state(provider, status["status"])
            raise CircuitOpenError(
                provider, status["failure_count"], await self.circuit_breaker.retry_after(provider)
            )

    async def _call_provider(self, operation: Callable[[], Awaitable[T]], context: str) -> T:
        """Run a provider call and report its outcome to the breaker and metrics."""
        provider = self.provider
        started = time.perf_counter()
        try:
            if self.retry_handler is not None:
                result = await self.retry_handler.execute(operation, context=context)
            else:
                result = await operation()
        except GenerationError as e:
            await self.circuit_breaker.record_failure(provider)
            if self.metrics:
                self.metrics.record_error(provider, e, time.perf_counter() - started)
            await self._publish_state()
            raise

        await self.circuit_breaker.record_success(provider)
        if self.metrics:
            self.metrics.record_request(provider, time.perf_counter() - started)
        await self._publish_state()
        return result

    async def _publish_state(self) -> None:
        if self.metrics:
            status = await self.circuit_breaker.get_status(self.provider)
            self.metrics.set_circuit_breaker_state(self.provider, status["status"])

    async def _generate(self, prompt: str, subject: str, options: dict[str, Any]) -> str:
        await self._admit(subject)

        cached = await self.client.get_cached_text(prompt, options)
        if cached is not None:
            if self.metrics:
                self.metrics.record_request(self.provider, 0.0, cache_hit=True)
            return cached

        await self.rate_limiter.record_request(self.provider, subject)
        return await self._call_provider(lambda: self.client.generate_text(prompt, options), "generate_text")

    async def generate_text(self, prompt: str, options: dict[str, Any] | None = None) -> str:
        """Generate text for a prompt.

        Args:
            prompt: User prompt
            options: Generation options; ``user_id`` selects the rate-limit subject

        Raises:
            RateLimitExceededError: If the subject has no quota left
            CircuitOpenError: If the provider's circuit is open
            GenerationError: If the provider call fails
        """
        subject, options = self._split_subject(options)
        return await self._generate(prompt, subject, options)

    async def generate_structured_output(
        self, prompt: str, format: str, options: dict[str, Any] | None = None
    ) -> Any:
        """Generate output in a given format.

        A reply that cannot be parsed raises ``MalformedOutputError`` but still
        counts as a provider success. The unparseable reply is dropped from the
        cache so the next call reaches the provider again.
        """
        subject, options = self._split_subject(options)
        structured_prompt = self.client.prepare_structured_prompt(prompt, format)
        text = await self._generate(structured_prompt, subject, options)
        try:
            return self.client.parse_structured_output(text, format)
        except MalformedOutputError:
            await self.client.invalidate_cached_text(structured_prompt, options)
            raise

    async def generate_embeddings(self, text: str, user_id: str | None = None) -> list[float]:
        """Generate an embedding vector under admission control; never cached."""
        subject = str(user_id) if user_id else DEFAULT_SUBJECT
        await self._admit(subject)
        await self.rate_limiter.record_request(self.provider, subject)
        return await self._call_provider(lambda: self.client.generate_embeddings(text), "generate_embeddings")

    async def get_status(self, subject: str = DEFAULT_SUBJECT) -> dict[str, Any]:
        """Breaker snapshot plus the subject's remaining quota."""
        status = await self.circuit_breaker.get_status(self.provider)
        window = await self.rate_limiter.get_window(self.provider, subject)
        return {
            **status,
            "model": self.model,
            "subject": subject,
            "remaining_requests": window.remaining,
            "max_requests": window.limit,
            "window_resets_at": window.resets_at,
        }

    async def health_check(self) -> bool:
        return await self.client.health_check()

    async def close(self) -> None:
        await self.client.close()
