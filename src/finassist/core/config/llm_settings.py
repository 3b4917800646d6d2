"""LLM provider configuration for the finassist LLM layer."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    OLLAMA = "ollama"
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    MOCK = "mock"  # Deterministic responses for tests and local development


class OllamaSettings(BaseModel):
    """Local Ollama model server."""

    base_url: str = Field(default="http://localhost:11434", description="Ollama server URL")
    model: str = Field(default="llama3", description="Model tag to generate with")
    timeout: float = Field(default=60.0, gt=0, le=600, description="Request timeout in seconds")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, ge=0.0, le=1.0)
    context_window: int = Field(default=2048, ge=256, description="Context window size (num_ctx)")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL."""
        return v.rstrip("/")


class OpenAISettings(BaseModel):
    """Hosted OpenAI-compatible API."""

    api_key: SecretStr | None = Field(default=None, description="API key (required to generate)")
    base_url: str = Field(default="https://api.openai.com/v1")
    model: str = Field(default="gpt-3.5-turbo")
    embedding_model: str = Field(default="text-embedding-3-small")
    timeout: float = Field(default=60.0, gt=0, le=600)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, ge=0.0, le=1.0)
    max_tokens: int = Field(default=1024, ge=1)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL."""
        return v.rstrip("/")


class OpenRouterSettings(OpenAISettings):
    """OpenRouter gateway (OpenAI-compatible chat completions)."""

    base_url: str = Field(default="https://openrouter.ai/api/v1")
    model: str = Field(default="deepseek/deepseek-r1-0528-qwen3-8b:free")
    timeout: float = Field(default=120.0, gt=0, le=600)
    max_tokens: int = Field(default=2048, ge=1)
    site_url: str = Field(default="", description="Sent as HTTP-Referer for OpenRouter rankings")
    site_name: str = Field(default="", description="Sent as X-Title for OpenRouter rankings")


class MockSettings(BaseModel):
    """Mock provider used in tests."""

    model: str = Field(default="test-model")
    system_prompt: str = Field(default="System prompt de prueba")
    failure_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class LLMDefaults(BaseModel):
    """Settings shared by every provider."""

    # Response cache
    cache_ttl: int = Field(default=60 * 60 * 24, ge=1, description="Cached response lifetime in seconds")
    cache_enabled: bool = Field(default=True)
    system_prompt: str = Field(default="Eres un asistente de finanzas personales útil y conciso.")

    # Rate limiting
    rate_limit_max_requests: int = Field(default=100, ge=1)
    rate_limit_window_minutes: int = Field(default=60, ge=1)

    # Circuit breaker
    circuit_breaker_failure_threshold: int = Field(default=5, ge=1)
    circuit_breaker_recovery_time_minutes: float = Field(default=10, gt=0)
    circuit_breaker_timeout_seconds: int = Field(default=30, ge=1)

    # Retry (0 disables retries)
    retry_max_attempts: int = Field(default=0, ge=0, le=10)
    retry_base_delay_ms: int = Field(default=1000, ge=0)
    retry_backoff_multiplier: float = Field(default=2.0, ge=1.0)

    metrics_enabled: bool = Field(default=True)


class LLMSettings(BaseModel):
    """Complete LLM configuration: default provider, per-provider sections and shared defaults."""

    provider: LLMProvider = Field(default=LLMProvider.OLLAMA, description="The default LLM provider")
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    openrouter: OpenRouterSettings = Field(default_factory=OpenRouterSettings)
    mock: MockSettings = Field(default_factory=MockSettings)
    defaults: LLMDefaults = Field(default_factory=LLMDefaults)

    def get_provider_config(self, provider: str) -> dict[str, Any] | None:
        """Get the plain configuration mapping for one provider section.

        Args:
            provider: Provider name

        Returns:
            Provider configuration with secrets revealed, or None if there is no such section
        """
        try:
            section = getattr(self, LLMProvider(provider.lower()).value)
        except ValueError:
            return None

        config = section.model_dump()
        api_key = config.get("api_key")
        if isinstance(api_key, SecretStr):
            config["api_key"] = api_key.get_secret_value()
        return config

    def get_client_config(self, provider: str) -> dict[str, Any] | None:
        """Merge shared defaults with a provider section."""
        provider_config = self.get_provider_config(provider)
        if provider_config is None:
            return None
        return {**self.defaults.model_dump(), **provider_config}

    def model_dump_safe(self) -> dict[str, Any]:
        """Dump model data without exposing secrets."""
        data = self.model_dump(mode="json")
        for section in (LLMProvider.OPENAI.value, LLMProvider.OPENROUTER.value):
            if data[section].get("api_key"):
                data[section]["api_key"] = "***masked***"
        return data
