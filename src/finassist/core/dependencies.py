"""Process-wide singletons for the LLM layer."""

from __future__ import annotations

from functools import lru_cache

from ..infrastructure.llm import LlmClientFactory, create_store
from ..infrastructure.monitoring import LlmMetrics
from ..infrastructure.storage import KeyValueStore
from .config import Settings


@lru_cache
def get_settings() -> Settings:
    """Get application settings (cached singleton)."""
    return Settings()


@lru_cache
def get_store() -> KeyValueStore:
    """Get the shared key-value store (singleton)."""
    return create_store(get_settings())


@lru_cache
def get_metrics() -> LlmMetrics:
    """Get the LLM metrics sink (singleton)."""
    return LlmMetrics()


@lru_cache
def get_llm_factory() -> LlmClientFactory:
    """Get the LLM client factory bound to the shared store and metrics.

    Returns:
        LlmClientFactory instance
    """
    return LlmClientFactory(get_settings(), store=get_store(), metrics=get_metrics())


def reset_dependencies() -> None:
    """Clear cached singletons (tests and settings reloads)."""
    for provider in (get_llm_factory, get_metrics, get_store, get_settings):
        provider.cache_clear()
