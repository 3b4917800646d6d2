"""Retry mechanism with exponential backoff for LLM calls."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog

from ....core.exceptions import LLMServiceUnavailableError, LLMTimeoutError

T = TypeVar("T")

logger = structlog.get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry mechanism.

    Attributes:
        max_retries: Retries after the first attempt (0 disables retrying)
        base_delay_ms: Delay before the first retry in milliseconds
        backoff_multiplier: Growth factor applied per retry
        jitter_ratio: Upper bound of random jitter as a fraction of the delay
        retryable_exceptions: Exception types that should trigger retry
    """

    max_retries: int = 3
    base_delay_ms: int = 1000
    backoff_multiplier: float = 2.0
    jitter_ratio: float = 0.1
    retryable_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (LLMTimeoutError, LLMServiceUnavailableError)
    )


class RetryHandler:
    """Run an async operation, retrying transient provider failures."""

    def __init__(self, config: RetryConfig | None = None):
        self.config = config or RetryConfig()

    @classmethod
    def create(cls, options: dict[str, Any] | None = None) -> RetryHandler:
        """Build a handler from the shared ``retry_*`` configuration keys."""
        options = options or {}
        return cls(
            RetryConfig(
                max_retries=options.get("retry_max_attempts", 3),
                base_delay_ms=options.get("retry_base_delay_ms", 1000),
                backoff_multiplier=options.get("retry_backoff_multiplier", 2.0),
            )
        )

    def calculate_delay_ms(self, attempt: int) -> float:
        """Backoff delay before retry number ``attempt`` (1-based)."""
        delay = self.config.base_delay_ms * self.config.backoff_multiplier ** (attempt - 1)
        return delay + random.uniform(0, delay * self.config.jitter_ratio)

    def is_retryable(self, error: Exception) -> bool:
        return isinstance(error, self.config.retryable_exceptions)

    async def execute(self, operation: Callable[[], Awaitable[T]], context: str = "") -> T:
        """Execute operation with retry logic.

        Args:
            operation: Zero-argument coroutine function to run
            context: Label used in log events

        Returns:
            Operation result

        Raises:
            The last exception raised by the operation
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                attempt += 1
                if not self.is_retryable(e) or attempt > self.config.max_retries:
                    logger.error(
                        "LLM operation failed permanently",
                        context=context,
                        attempt=attempt,
                        error=str(e),
                        retryable=self.is_retryable(e),
                    )
                    raise

                delay_ms = self.calculate_delay_ms(attempt)
                logger.warning(
                    "LLM operation failed, will retry",
                    context=context,
                    attempt=attempt,
                    error=str(e),
                    next_delay_ms=int(delay_ms),
                )
                await asyncio.sleep(delay_ms / 1000.0)
