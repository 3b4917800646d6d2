"""LLM clients, provider adapters and resilience policies."""

from .adapters import (
    BaseLLMAdapter,
    MockAdapter,
    OllamaAdapter,
    OpenAIAdapter,
    OpenRouterAdapter,
)
from .client import LlmClient
from .factory import LlmClientFactory, create_store
from .resilience import CircuitBreaker, CircuitState, RateLimiter, RateWindow, RetryConfig, RetryHandler
from .resilient_client import ResilientLlmClient

__all__ = [
    # Adapters
    "BaseLLMAdapter",
    "OllamaAdapter",
    "OpenAIAdapter",
    "OpenRouterAdapter",
    "MockAdapter",
    # Clients and factory
    "LlmClient",
    "ResilientLlmClient",
    "LlmClientFactory",
    "create_store",
    # Resilience
    "CircuitBreaker",
    "CircuitState",
    "RateLimiter",
    "RateWindow",
    "RetryConfig",
    "RetryHandler",
]
