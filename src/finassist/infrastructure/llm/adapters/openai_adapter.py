"""OpenAI-compatible LLM adapter implementation."""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict

from ....core.exceptions import ConfigurationError, GenerationError
from .base_adapter import HttpLLMAdapter

logger = structlog.get_logger(__name__)


class OpenAIConfig(BaseModel):
    """Configuration for OpenAI adapter."""

    model_config = ConfigDict(extra="ignore")

    api_key: str | None = None
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-3.5-turbo"
    embedding_model: str = "text-embedding-3-small"
    timeout: float = 60.0
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = 1024


class OpenAIMessage(BaseModel):
    """OpenAI message format."""

    role: str
    content: str | None = None


class OpenAIRequest(BaseModel):
    """OpenAI chat completions request format."""

    model: str
    messages: list[OpenAIMessage]
    temperature: float = 0.7
    top_p: float | None = None
    max_tokens: int | None = None


class OpenAIChoice(BaseModel):
    """OpenAI response choice."""

    model_config = ConfigDict(extra="ignore")

    message: OpenAIMessage
    finish_reason: str | None = None
    index: int = 0


class OpenAIUsage(BaseModel):
    """OpenAI usage statistics."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class OpenAIResponse(BaseModel):
    """OpenAI chat completions response format."""

    model_config = ConfigDict(extra="ignore")

    model: str | None = None
    choices: list[OpenAIChoice]
    usage: OpenAIUsage | None = None


class OpenAIEmbeddingData(BaseModel):
    """One embedding row."""

    model_config = ConfigDict(extra="ignore")

    embedding: list[float]
    index: int = 0


class OpenAIEmbeddingResponse(BaseModel):
    """OpenAI /embeddings response format."""

    model_config = ConfigDict(extra="ignore")

    data: list[OpenAIEmbeddingData]


class OpenAIAdapter(HttpLLMAdapter):
    """Adapter for the hosted OpenAI API and compatible servers."""

    provider_name = "openai"
    config_model: type[OpenAIConfig] = OpenAIConfig

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None, name: str = "OpenAI"):
        super().__init__(name, transport=transport)
        self.config: OpenAIConfig = self.config_model()

    def initialize(self, config: dict[str, Any]) -> None:
        """Configure the adapter.

        Raises:
            ConfigurationError: If no API key is configured
        """
        self.config = self.config_model.model_validate(config)
        if not self.config.api_key:
            raise ConfigurationError(
                f"An API key is required for {self.name}", details={"provider": self.provider_name}
            )

        self._build_client(self.config.base_url.rstrip("/"), self.config.timeout, headers=self._headers())

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    def _prepare_request(self, prompt: str, system_prompt: str, options: dict[str, Any]) -> OpenAIRequest:
        """Prepare chat completions request from a prompt and system prompt."""
        messages = []
        if system_prompt:
            messages.append(OpenAIMessage(role="system", content=system_prompt))
        messages.append(OpenAIMessage(role="user", content=prompt))

        return OpenAIRequest(
            model=options.get("model", self.config.model),
            messages=messages,
            temperature=options.get("temperature", self.config.temperature),
            top_p=options.get("top_p", self.config.top_p),
            max_tokens=options.get("max_tokens", self.config.max_tokens),
        )

    async def generate_text(self, prompt: str, system_prompt: str = "", options: dict[str, Any] | None = None) -> str:
        """Generate text using the chat completions endpoint.

        Raises:
            GenerationError: If generation fails
        """
        request = self._prepare_request(prompt, system_prompt, options or {})
        response: OpenAIResponse = await self._post(
            "/chat/completions", request.model_dump(exclude_none=True), OpenAIResponse
        )

        if not response.choices:
            raise GenerationError(f"No choices in {self.name} response", provider=self.provider_name)

        content = response.choices[0].message.content
        if not content:
            raise GenerationError(f"Empty content in {self.name} response", provider=self.provider_name)

        if response.usage:
            logger.debug(
                "Chat completion usage",
                provider=self.provider_name,
                model=response.model,
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
            )
        return content

    async def generate_embeddings(self, text: str) -> list[float]:
        """Generate embeddings using the /embeddings endpoint."""
        payload = {"model": self.config.embedding_model, "input": text}
        response: OpenAIEmbeddingResponse = await self._post("/embeddings", payload, OpenAIEmbeddingResponse)
        if not response.data:
            raise GenerationError(f"No embedding data in {self.name} response", provider=self.provider_name)
        return response.data[0].embedding

    async def health_check(self) -> bool:
        """Check if the API answers /models."""
        return await self._get_ok("/models")
