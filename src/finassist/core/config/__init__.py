"""Configuration for the finassist LLM layer."""

from .config import Settings, StoreBackend
from .llm_settings import (
    LLMDefaults,
    LLMProvider,
    LLMSettings,
    MockSettings,
    OllamaSettings,
    OpenAISettings,
    OpenRouterSettings,
)
from .logging import LogFormat, LoggingConfig, LogLevel, setup_logging

__all__ = [
    "Settings",
    "StoreBackend",
    "LLMProvider",
    "LLMSettings",
    "LLMDefaults",
    "OllamaSettings",
    "OpenAISettings",
    "OpenRouterSettings",
    "MockSettings",
    "LoggingConfig",
    "LogLevel",
    "LogFormat",
    "setup_logging",
]
