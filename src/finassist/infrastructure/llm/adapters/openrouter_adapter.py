"""OpenRouter adapter (OpenAI-compatible chat completions gateway)."""

from __future__ import annotations

import httpx

from ....core.exceptions import UnsupportedOperationError
from .openai_adapter import OpenAIAdapter, OpenAIConfig


class OpenRouterConfig(OpenAIConfig):
    """Configuration for OpenRouter adapter."""

    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "deepseek/deepseek-r1-0528-qwen3-8b:free"
    timeout: float = 120.0
    max_tokens: int = 2048
    site_url: str = ""
    site_name: str = ""


class OpenRouterAdapter(OpenAIAdapter):
    """Adapter for OpenRouter, adding its optional attribution headers."""

    provider_name = "openrouter"
    config_model = OpenRouterConfig

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(transport=transport, name="OpenRouter")

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self.config.site_url:
            headers["HTTP-Referer"] = self.config.site_url
        if self.config.site_name:
            headers["X-Title"] = self.config.site_name
        return headers

    async def generate_embeddings(self, text: str) -> list[float]:
        """OpenRouter does not serve embeddings."""
        raise UnsupportedOperationError(
            "Embeddings are not supported by OpenRouter", provider=self.provider_name, operation="embeddings"
        )
