"""Provider adapter implementations."""

from .base_adapter import BaseLLMAdapter, HttpLLMAdapter
from .mock_adapter import MockAdapter, MockConfig
from .ollama_adapter import OllamaAdapter, OllamaConfig
from .openai_adapter import OpenAIAdapter, OpenAIConfig
from .openrouter_adapter import OpenRouterAdapter, OpenRouterConfig

__all__ = [
    "BaseLLMAdapter",
    "HttpLLMAdapter",
    "OllamaAdapter",
    "OllamaConfig",
    "OpenAIAdapter",
    "OpenAIConfig",
    "OpenRouterAdapter",
    "OpenRouterConfig",
    "MockAdapter",
    "MockConfig",
]
