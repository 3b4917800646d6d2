"""Factory for creating LLM clients based on configuration."""

from __future__ import annotations

from typing import Any

import structlog

from ...core.config import Settings, StoreBackend
from ...core.exceptions import UnsupportedProviderError
from ..monitoring import LlmMetrics
from ..storage import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from .adapters import BaseLLMAdapter, MockAdapter, OllamaAdapter, OpenAIAdapter, OpenRouterAdapter
from .client import LlmClient
from .resilience import CircuitBreaker, RateLimiter, RetryHandler
from .resilient_client import ResilientLlmClient

logger = structlog.get_logger(__name__)

ADAPTERS: dict[str, type[BaseLLMAdapter]] = {
    "ollama": OllamaAdapter,
    "openai": OpenAIAdapter,
    "openrouter": OpenRouterAdapter,
    "mock": MockAdapter,
}


def create_store(settings: Settings) -> KeyValueStore:
    """Build the shared key-value store selected by ``STORE_BACKEND``."""
    if settings.STORE_BACKEND == StoreBackend.REDIS:
        logger.info("Using Redis key-value store")
        return RedisKeyValueStore.from_url(settings.REDIS_URL, prefix=settings.STORE_KEY_PREFIX)
    return InMemoryKeyValueStore()


class LlmClientFactory:
    """Factory for creating LLM clients.

    Clients built by one factory share its store, so they also share
    breaker, rate-limit and cache state for a provider.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: KeyValueStore | None = None,
        metrics: LlmMetrics | None = None,
    ):
        """Initialize the factory.

        Args:
            settings: Application settings (loaded from the environment when omitted)
            store: Shared store (built from ``STORE_BACKEND`` when omitted)
            metrics: Shared metrics sink (created when metrics are enabled)
        """
        self.settings = settings or Settings()
        self.llm_settings = self.settings.llm_config
        self.store = store if store is not None else create_store(self.settings)
        if metrics is None and self.llm_settings.defaults.metrics_enabled:
            metrics = LlmMetrics()
        self.metrics = metrics

    def build_config(self, provider: str, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
        """Shared defaults, then the provider section, then caller overrides.

        Raises:
            UnsupportedProviderError: If the provider has no configuration section
        """
        config = self.llm_settings.get_client_config(provider)
        if config is None:
            raise UnsupportedProviderError(provider)
        return {**config, **(overrides or {})}

    def _resolve_provider(self, provider: str | None) -> str:
        return (provider or self.llm_settings.provider.value).lower()

    def create(self, provider: str | None = None, overrides: dict[str, Any] | None = None) -> LlmClient:
        """Create a client for a provider.

        Args:
            provider: Provider name; the configured default when omitted
            overrides: Configuration values taking precedence over settings

        Returns:
            Configured client

        Raises:
            UnsupportedProviderError: If the provider is not supported
            ConfigurationError: If the provider configuration is incomplete
        """
        provider = self._resolve_provider(provider)
        adapter = self.create_adapter(provider)
        config = self.build_config(provider, overrides)

        client = LlmClient(adapter, config, self.store)
        logger.info("LLM client created", provider=provider, model=client.model)
        return client

    def create_policies(
        self, provider: str | None = None, overrides: dict[str, Any] | None = None
    ) -> tuple[CircuitBreaker, RateLimiter]:
        """Build the breaker and rate limiter for a provider without touching its adapter."""
        config = self.build_config(self._resolve_provider(provider), overrides)
        breaker = CircuitBreaker(
            self.store,
            failure_threshold=config["circuit_breaker_failure_threshold"],
            recovery_minutes=config["circuit_breaker_recovery_time_minutes"],
            request_timeout_seconds=config["circuit_breaker_timeout_seconds"],
        )
        limiter = RateLimiter(
            self.store,
            max_requests=config["rate_limit_max_requests"],
            window_minutes=config["rate_limit_window_minutes"],
        )
        return breaker, limiter

    def create_resilient(
        self, provider: str | None = None, overrides: dict[str, Any] | None = None
    ) -> ResilientLlmClient:
        """Create a client wrapped with breaker, rate limiter, metrics and optional retry."""
        provider = self._resolve_provider(provider)
        client = self.create(provider, overrides)
        config = self.build_config(provider, overrides)
        breaker, limiter = self.create_policies(provider, overrides)
        retry_handler = RetryHandler.create(config) if config["retry_max_attempts"] > 0 else None

        return ResilientLlmClient(client, breaker, limiter, metrics=self.metrics, retry_handler=retry_handler)

    @staticmethod
    def create_adapter(provider: str) -> BaseLLMAdapter:
        """Instantiate the adapter class for a provider.

        Raises:
            UnsupportedProviderError: If the provider is not supported
        """
        adapter_class = ADAPTERS.get(provider.lower())
        if adapter_class is None:
            raise UnsupportedProviderError(provider)
        return adapter_class()

    @staticmethod
    def get_supported_providers() -> list[str]:
        """Get list of supported LLM providers."""
        return list(ADAPTERS)
