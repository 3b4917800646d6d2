"""Resilience patterns for LLM clients."""

from .circuit_breaker import CircuitBreaker, CircuitState
from .rate_limiter import RateLimiter, RateWindow
from .retry import RetryConfig, RetryHandler

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "RateLimiter",
    "RateWindow",
    "RetryConfig",
    "RetryHandler",
]
