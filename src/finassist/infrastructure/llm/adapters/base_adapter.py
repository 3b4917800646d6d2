"""Base LLM adapter interface and shared HTTP transport handling."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ....core.exceptions import (
    ConfigurationError,
    GenerationError,
    LLMServiceUnavailableError,
    LLMTimeoutError,
)

logger = structlog.get_logger(__name__)


class BaseLLMAdapter(ABC):
    """Abstract base class for all provider adapters.

    An adapter translates one generation request into a backend's wire
    protocol and back. It neither retries nor caches; transport failures
    surface as ``GenerationError``.
    """

    provider_name: str = ""

    def __init__(self, name: str):
        """Initialize the adapter.

        Args:
            name: Human-readable name for this adapter
        """
        self.name = name
        self.config: Any = None

    def get_provider_name(self) -> str:
        """Provider key used for breaker, limiter and cache state."""
        return self.provider_name

    @abstractmethod
    def initialize(self, config: dict[str, Any]) -> None:
        """Configure the adapter from a merged configuration mapping.

        Raises:
            ConfigurationError: If required settings are missing
        """
        pass

    @abstractmethod
    async def generate_text(self, prompt: str, system_prompt: str = "", options: dict[str, Any] | None = None) -> str:
        """Generate text for a prompt.

        Raises:
            GenerationError: If the provider call fails
        """
        pass

    @abstractmethod
    async def generate_embeddings(self, text: str) -> list[float]:
        """Generate an embedding vector for a text.

        Raises:
            GenerationError: If the provider call fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is reachable."""
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None


class HttpLLMAdapter(BaseLLMAdapter):
    """Adapter talking to a provider over HTTP with ``httpx``."""

    def __init__(self, name: str, transport: httpx.AsyncBaseTransport | None = None):
        """Initialize the adapter.

        Args:
            name: Human-readable name for this adapter
            transport: Optional httpx transport (tests inject ``httpx.MockTransport``)
        """
        super().__init__(name)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _build_client(self, base_url: str, timeout: float, headers: dict[str, str]) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json", **headers},
            transport=self._transport,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise ConfigurationError(f"{self.name} adapter used before initialize()")
        return self._client

    async def _post(self, path: str, payload: dict[str, Any], response_model: type[BaseModel]) -> Any:
        """POST a JSON payload and validate the response body.

        Raises:
            LLMTimeoutError: If request times out
            LLMServiceUnavailableError: On 429, 5xx or network failure
            GenerationError: For other API errors or an unexpected body
        """
        provider = self.provider_name
        try:
            response = await self.client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise LLMTimeoutError(f"{self.name} request timed out", provider=provider, original_error=e) from e
        except httpx.HTTPError as e:
            raise LLMServiceUnavailableError(
                f"{self.name} network error: {e}", provider=provider, original_error=e
            ) from e

        if response.status_code == 429:
            raise LLMServiceUnavailableError(f"{self.name} rate limit exceeded (429)", provider=provider)
        if response.status_code >= 500:
            raise LLMServiceUnavailableError(
                f"{self.name} server error: {response.status_code}", provider=provider
            )
        if response.status_code == 404:
            raise GenerationError(f"{self.name} resource not found: {path}", provider=provider)
        if response.status_code != 200:
            raise GenerationError(
                f"{self.name} API error {response.status_code}: {response.text}",
                provider=provider,
                details={"status_code": response.status_code},
            )

        try:
            return response_model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise GenerationError(
                f"Malformed response from {self.name}: {e}", provider=provider, original_error=e
            ) from e

    async def _get_ok(self, path: str) -> bool:
        try:
            response = await self.client.get(path)
        except httpx.HTTPError as e:
            logger.warning("Provider health check failed", provider=self.provider_name, error=str(e))
            return False
        return response.status_code == 200

    async def close(self) -> None:
        """Close HTTP client connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
