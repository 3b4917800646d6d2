"""Ollama LLM adapter implementation."""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict

from ....core.exceptions import ConfigurationError, GenerationError
from .base_adapter import HttpLLMAdapter

logger = structlog.get_logger(__name__)


class OllamaConfig(BaseModel):
    """Configuration for Ollama adapter."""

    model_config = ConfigDict(extra="ignore")

    base_url: str = "http://localhost:11434"
    model: str = "llama3"
    timeout: float = 60.0
    temperature: float = 0.7
    top_p: float = 0.9
    context_window: int | None = None


class OllamaRequest(BaseModel):
    """Ollama /api/generate request format."""

    model: str
    prompt: str
    system: str | None = None
    stream: bool = False
    options: dict[str, Any] | None = None


class OllamaResponse(BaseModel):
    """Ollama /api/generate response format."""

    model_config = ConfigDict(extra="ignore")

    model: str
    response: str
    done: bool = True
    prompt_eval_count: int | None = None
    eval_count: int | None = None


class OllamaEmbeddingResponse(BaseModel):
    """Ollama /api/embeddings response format."""

    embedding: list[float]


class OllamaAdapter(HttpLLMAdapter):
    """Adapter for a local Ollama model server."""

    provider_name = "ollama"

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__("Ollama", transport=transport)
        self.config: OllamaConfig = OllamaConfig()

    def initialize(self, config: dict[str, Any]) -> None:
        """Configure the adapter.

        Args:
            config: Merged provider configuration

        Raises:
            ConfigurationError: If no model is configured
        """
        self.config = OllamaConfig.model_validate(config)
        if not self.config.model:
            raise ConfigurationError("A model is required for Ollama", details={"provider": self.provider_name})

        self._build_client(self.config.base_url.rstrip("/"), self.config.timeout, headers={})

    def _prepare_request(self, prompt: str, system_prompt: str, options: dict[str, Any]) -> OllamaRequest:
        """Prepare Ollama API request, letting per-call options override configured ones."""
        generation_options: dict[str, Any] = {
            "temperature": options.get("temperature", self.config.temperature),
            "top_p": options.get("top_p", self.config.top_p),
        }

        context_window = options.get("context_window", self.config.context_window)
        if context_window:
            generation_options["num_ctx"] = context_window
        if options.get("max_tokens"):
            generation_options["num_predict"] = options["max_tokens"]

        return OllamaRequest(
            model=options.get("model", self.config.model),
            prompt=prompt,
            system=system_prompt or None,
            stream=False,
            options=generation_options,
        )

    async def generate_text(self, prompt: str, system_prompt: str = "", options: dict[str, Any] | None = None) -> str:
        """Generate text using the Ollama /api/generate endpoint.

        Raises:
            GenerationError: If generation fails
        """
        request = self._prepare_request(prompt, system_prompt, options or {})
        response: OllamaResponse = await self._post(
            "/api/generate", request.model_dump(exclude_none=True), OllamaResponse
        )

        if not response.response:
            raise GenerationError("Empty response from Ollama", provider=self.provider_name)

        logger.debug(
            "Ollama generation completed",
            model=response.model,
            prompt_tokens=response.prompt_eval_count,
            completion_tokens=response.eval_count,
        )
        return response.response

    async def generate_embeddings(self, text: str) -> list[float]:
        """Generate embeddings using the Ollama /api/embeddings endpoint."""
        payload = {"model": self.config.model, "prompt": text}
        response: OllamaEmbeddingResponse = await self._post("/api/embeddings", payload, OllamaEmbeddingResponse)
        return response.embedding

    async def health_check(self) -> bool:
        """Check if the Ollama server answers /api/tags."""
        return await self._get_ok("/api/tags")

    async def list_available_models(self) -> list[str]:
        """Get the list of models pulled on the Ollama server.

        Raises:
            GenerationError: If unable to fetch models
        """
        try:
            response = await self.client.get("/api/tags")
        except httpx.HTTPError as e:
            raise GenerationError(
                f"Error fetching Ollama models: {e}", provider=self.provider_name, original_error=e
            ) from e
        if response.status_code != 200:
            raise GenerationError(
                f"Failed to fetch Ollama models: {response.status_code}", provider=self.provider_name
            )
        return [model["name"] for model in response.json().get("models", [])]
