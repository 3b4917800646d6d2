"""
Pytest configuration and shared fixtures for the finassist test suite.

Provides an in-memory store, a call-counting adapter double and settings
isolated from the developer's environment.
"""

import os
from typing import Any

import pytest
from freezegun import freeze_time

# Set test environment before imports
os.environ["LLM_PROVIDER"] = "mock"
os.environ["STORE_BACKEND"] = "memory"
os.environ["LOG_LEVEL"] = "WARNING"

from finassist.core.config import Settings
from finassist.core.exceptions import GenerationError
from finassist.infrastructure.llm.adapters.base_adapter import BaseLLMAdapter
from finassist.infrastructure.storage import InMemoryKeyValueStore


class CountingAdapter(BaseLLMAdapter):
    """Adapter double that records calls and replays scripted outcomes."""

    provider_name = "counting"

    def __init__(self, reply: str = "respuesta", provider_name: str = "counting"):
        super().__init__("Counting")
        self.provider_name = provider_name
        self.reply = reply
        self.calls: list[dict[str, Any]] = []
        self.embedding_calls = 0
        self.errors: list[Exception] = []
        self.closed = False

    def initialize(self, config: dict[str, Any]) -> None:
        self.config = config

    def fail_next(self, *errors: Exception) -> None:
        """Queue errors raised by the next calls, one per call."""
        self.errors.extend(errors)

    def _maybe_raise(self) -> None:
        if self.errors:
            raise self.errors.pop(0)

    async def generate_text(self, prompt: str, system_prompt: str = "", options: dict[str, Any] | None = None) -> str:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "options": options})
        self._maybe_raise()
        return self.reply

    async def generate_embeddings(self, text: str) -> list[float]:
        self.embedding_calls += 1
        self._maybe_raise()
        return [0.1, 0.2, 0.3]

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    """Fresh in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def adapter() -> CountingAdapter:
    """Call-counting adapter double."""
    return CountingAdapter()


@pytest.fixture
def adapter_factory() -> type[CountingAdapter]:
    """The adapter double class, for tests needing several instances."""
    return CountingAdapter


@pytest.fixture
def provider_failure() -> GenerationError:
    """A generic provider failure."""
    return GenerationError("boom", provider="counting")


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore any local .env file."""
    return Settings(_env_file=None, LLM_PROVIDER="mock", STORE_BACKEND="memory")


@pytest.fixture
def frozen_time():
    """Freeze time for deterministic cooldown and window tests."""
    with freeze_time("2025-08-26 10:00:00") as frozen:
        yield frozen


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: tests that need external services")
