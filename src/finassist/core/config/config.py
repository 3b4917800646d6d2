"""Configuration management for the finassist LLM layer."""

from enum import Enum
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

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

load_dotenv()


class StoreBackend(str, Enum):
    """Backends for the shared key-value store."""

    MEMORY = "memory"
    REDIS = "redis"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    APP_NAME: str = Field(default="finassist")

    # Default provider
    LLM_PROVIDER: LLMProvider = Field(default=LLMProvider.OLLAMA)

    # Ollama
    OLLAMA_BASE_URL: str = Field(default="http://localhost:11434")
    OLLAMA_MODEL: str = Field(default="llama3")
    OLLAMA_TIMEOUT: float = Field(default=60.0, gt=0)
    OLLAMA_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)
    OLLAMA_TOP_P: float = Field(default=0.9, ge=0.0, le=1.0)
    OLLAMA_CONTEXT_WINDOW: int = Field(default=2048, ge=256)

    # OpenAI
    OPENAI_API_KEY: SecretStr | None = Field(default=None)
    OPENAI_BASE_URL: str = Field(default="https://api.openai.com/v1")
    OPENAI_MODEL: str = Field(default="gpt-3.5-turbo")
    OPENAI_EMBEDDING_MODEL: str = Field(default="text-embedding-3-small")
    OPENAI_TIMEOUT: float = Field(default=60.0, gt=0)
    OPENAI_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)
    OPENAI_TOP_P: float = Field(default=0.9, ge=0.0, le=1.0)
    OPENAI_MAX_TOKENS: int = Field(default=1024, ge=1)

    # OpenRouter
    OPENROUTER_API_KEY: SecretStr | None = Field(default=None)
    OPENROUTER_BASE_URL: str = Field(default="https://openrouter.ai/api/v1")
    OPENROUTER_MODEL: str = Field(default="deepseek/deepseek-r1-0528-qwen3-8b:free")
    OPENROUTER_TIMEOUT: float = Field(default=120.0, gt=0)
    OPENROUTER_SITE_URL: str = Field(default="")
    OPENROUTER_SITE_NAME: str = Field(default="")
    OPENROUTER_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)
    OPENROUTER_TOP_P: float = Field(default=0.9, ge=0.0, le=1.0)
    OPENROUTER_MAX_TOKENS: int = Field(default=2048, ge=1)

    # Shared LLM behaviour
    LLM_CACHE_TTL: int = Field(default=60 * 60 * 24, ge=1)
    LLM_CACHE_ENABLED: bool = Field(default=True)
    LLM_SYSTEM_PROMPT: str = Field(default="Eres un asistente de finanzas personales útil y conciso.")
    LLM_RATE_LIMIT_MAX_REQUESTS: int = Field(default=100, ge=1)
    LLM_RATE_LIMIT_WINDOW_MINUTES: int = Field(default=60, ge=1)
    LLM_CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = Field(default=5, ge=1)
    LLM_CIRCUIT_BREAKER_RECOVERY_TIME_MINUTES: float = Field(default=10, gt=0)
    LLM_CIRCUIT_BREAKER_TIMEOUT_SECONDS: int = Field(default=30, ge=1)
    LLM_RETRY_MAX_ATTEMPTS: int = Field(default=0, ge=0, le=10)
    LLM_RETRY_BASE_DELAY_MS: int = Field(default=1000, ge=0)
    LLM_RETRY_BACKOFF_MULTIPLIER: float = Field(default=2.0, ge=1.0)
    LLM_METRICS_ENABLED: bool = Field(default=True)

    # Shared store
    STORE_BACKEND: StoreBackend = Field(default=StoreBackend.MEMORY)
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    STORE_KEY_PREFIX: str = Field(default="finassist:")

    # Logging
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    LOG_FORMAT: LogFormat = Field(default=LogFormat.JSON)
    LOG_CONSOLE_ENABLED: bool = Field(default=True)
    LOG_FILE_ENABLED: bool = Field(default=False)
    LOG_FILE_PATH: str = Field(default="logs/finassist.log")

    @computed_field
    @property
    def llm_config(self) -> LLMSettings:
        """Generate LLM configuration from individual settings."""
        return LLMSettings(
            provider=self.LLM_PROVIDER,
            ollama=OllamaSettings(
                base_url=self.OLLAMA_BASE_URL,
                model=self.OLLAMA_MODEL,
                timeout=self.OLLAMA_TIMEOUT,
                temperature=self.OLLAMA_TEMPERATURE,
                top_p=self.OLLAMA_TOP_P,
                context_window=self.OLLAMA_CONTEXT_WINDOW,
            ),
            openai=OpenAISettings(
                api_key=self.OPENAI_API_KEY,
                base_url=self.OPENAI_BASE_URL,
                model=self.OPENAI_MODEL,
                embedding_model=self.OPENAI_EMBEDDING_MODEL,
                timeout=self.OPENAI_TIMEOUT,
                temperature=self.OPENAI_TEMPERATURE,
                top_p=self.OPENAI_TOP_P,
                max_tokens=self.OPENAI_MAX_TOKENS,
            ),
            openrouter=OpenRouterSettings(
                api_key=self.OPENROUTER_API_KEY,
                base_url=self.OPENROUTER_BASE_URL,
                model=self.OPENROUTER_MODEL,
                timeout=self.OPENROUTER_TIMEOUT,
                site_url=self.OPENROUTER_SITE_URL,
                site_name=self.OPENROUTER_SITE_NAME,
                temperature=self.OPENROUTER_TEMPERATURE,
                top_p=self.OPENROUTER_TOP_P,
                max_tokens=self.OPENROUTER_MAX_TOKENS,
            ),
            mock=MockSettings(),
            defaults=LLMDefaults(
                cache_ttl=self.LLM_CACHE_TTL,
                cache_enabled=self.LLM_CACHE_ENABLED,
                system_prompt=self.LLM_SYSTEM_PROMPT,
                rate_limit_max_requests=self.LLM_RATE_LIMIT_MAX_REQUESTS,
                rate_limit_window_minutes=self.LLM_RATE_LIMIT_WINDOW_MINUTES,
                circuit_breaker_failure_threshold=self.LLM_CIRCUIT_BREAKER_FAILURE_THRESHOLD,
                circuit_breaker_recovery_time_minutes=self.LLM_CIRCUIT_BREAKER_RECOVERY_TIME_MINUTES,
                circuit_breaker_timeout_seconds=self.LLM_CIRCUIT_BREAKER_TIMEOUT_SECONDS,
                retry_max_attempts=self.LLM_RETRY_MAX_ATTEMPTS,
                retry_base_delay_ms=self.LLM_RETRY_BASE_DELAY_MS,
                retry_backoff_multiplier=self.LLM_RETRY_BACKOFF_MULTIPLIER,
                metrics_enabled=self.LLM_METRICS_ENABLED,
            ),
        )

    @computed_field
    @property
    def logging_config(self) -> LoggingConfig:
        """Generate logging configuration from individual settings."""
        return LoggingConfig(
            app_name=self.APP_NAME,
            level=self.LOG_LEVEL,
            format=self.LOG_FORMAT,
            console_enabled=self.LOG_CONSOLE_ENABLED,
            file_enabled=self.LOG_FILE_ENABLED,
            file_path=self.LOG_FILE_PATH,
        )

    def setup_logging(self) -> None:
        """Initialize logging using the logging configuration."""
        setup_logging(self.logging_config)

    def model_dump_safe(self) -> dict[str, Any]:
        """Dump settings without exposing secrets."""
        data = self.model_dump(exclude={"llm_config", "logging_config"})

        for key in ("OPENAI_API_KEY", "OPENROUTER_API_KEY"):
            if data.get(key):
                data[key] = "***masked***"

        return data
