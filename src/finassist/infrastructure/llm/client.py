"""LLM client: system-prompt injection, response caching and structured output."""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any

import structlog

from ...core.exceptions import ConfigurationError, MalformedOutputError
from ..storage import KeyValueStore
from .adapters.base_adapter import BaseLLMAdapter

logger = structlog.get_logger(__name__)

DEFAULT_CACHE_TTL = 60 * 60 * 24

FORMAT_INSTRUCTIONS = {
    "json": (
        "Responde únicamente con un JSON válido y bien formateado. "
        "No incluyas ningún texto adicional ni marcadores de código."
    ),
    "markdown": "Responde utilizando formato Markdown.",
    "html": "Responde con HTML válido y bien formateado.",
    "csv": "Responde con datos en formato CSV válido.",
}

_CODE_FENCE = re.compile(r"```json\s*|\s*```")


def _md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


class LlmClient:
    """Front door to one provider adapter.

    The client prepends the configured system prompt to every call and
    caches generated text in the shared store under a fingerprint of
    provider, model, prompt, system prompt and options. Adapter errors are
    propagated unchanged; admission control lives in ``ResilientLlmClient``.
    """

    def __init__(
        self,
        adapter: BaseLLMAdapter,
        config: dict[str, Any] | None = None,
        store: KeyValueStore | None = None,
    ):
        """Initialize the client and configure its adapter.

        Args:
            adapter: Provider adapter, initialized here with ``config``
            config: Merged client configuration
            store: Shared store for cached responses

        Raises:
            ConfigurationError: If caching is enabled without a store, or the adapter rejects its config
        """
        config = dict(config or {})
        self.adapter = adapter
        self.adapter.initialize(config)

        self._model: str = config.get("model") or "default-model"
        self.cache_enabled: bool = config.get("cache_enabled", True)
        self.cache_ttl: int = config.get("cache_ttl", DEFAULT_CACHE_TTL)
        self.system_prompt: str = config.get("system_prompt") or ""
        self.store = store

        if self.cache_enabled and store is None:
            raise ConfigurationError(
                "A key-value store is required when response caching is enabled",
                details={"provider": self.provider},
            )

    @property
    def provider(self) -> str:
        return self.adapter.get_provider_name()

    @property
    def model(self) -> str:
        return self._model

    def cache_key(self, prompt: str, options: dict[str, Any] | None = None) -> str:
        """Fingerprint of one generation request."""
        options_json = json.dumps(options or {}, sort_keys=True, default=str)
        return ":".join(
            [
                "llm",
                self.provider,
                self.model,
                _md5(prompt),
                _md5(self.system_prompt),
                _md5(options_json),
            ]
        )

    async def get_cached_text(self, prompt: str, options: dict[str, Any] | None = None) -> str | None:
        """Return the cached reply for a request, or None on a miss or with caching off."""
        if not self.cache_enabled or self.store is None:
            return None
        cached = await self.store.get(self.cache_key(prompt, options))
        if cached is not None:
            logger.debug("LLM cache hit", provider=self.provider, model=self.model)
        return cached

    async def invalidate_cached_text(self, prompt: str, options: dict[str, Any] | None = None) -> None:
        """Drop the cached reply for a request."""
        if self.cache_enabled and self.store is not None:
            await self.store.delete(self.cache_key(prompt, options))

    async def generate_text(self, prompt: str, options: dict[str, Any] | None = None) -> str:
        """Generate text for a prompt, serving repeated requests from the cache.

        Args:
            prompt: User prompt
            options: Per-call generation options

        Returns:
            Generated text

        Raises:
            GenerationError: If the adapter call fails
        """
        options = dict(options or {})

        cached = await self.get_cached_text(prompt, options)
        if cached is not None:
            return cached

        try:
            text = await self.adapter.generate_text(prompt, self.system_prompt, options)
        except Exception as e:
            logger.error(
                "Error generating text",
                provider=self.provider,
                model=self.model,
                prompt_length=len(prompt),
                error=str(e),
            )
            raise

        if self.cache_enabled and self.store is not None and text:
            await self.store.set(self.cache_key(prompt, options), text, ttl_seconds=self.cache_ttl)

        logger.info(
            "Text generated",
            provider=self.provider,
            model=self.model,
            prompt_length=len(prompt),
            response_length=len(text),
        )
        return text

    @staticmethod
    def prepare_structured_prompt(prompt: str, format: str) -> str:
        """Append output-format instructions to a prompt."""
        instructions = FORMAT_INSTRUCTIONS.get(format, f"Responde utilizando el formato {format}.")
        return f"{prompt}\n\n{instructions}"

    @staticmethod
    def parse_structured_output(output: str, format: str) -> Any:
        """Parse generated text for the requested format.

        JSON output has code fences stripped and is decoded; other formats are
        returned as text.

        Raises:
            MalformedOutputError: If JSON output cannot be decoded
        """
        if format != "json":
            return output

        cleaned = _CODE_FENCE.sub("", output).strip()
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning("Error parsing structured output", format=format, error=str(e))
            raise MalformedOutputError(f"Generated output is not valid JSON: {e}", format, output) from e

    async def generate_structured_output(
        self, prompt: str, format: str, options: dict[str, Any] | None = None
    ) -> Any:
        """Generate output in a given format (json, markdown, html, csv, ...).

        Raises:
            GenerationError: If the adapter call fails
            MalformedOutputError: If JSON output cannot be decoded
        """
        structured_prompt = self.prepare_structured_prompt(prompt, format)
        text = await self.generate_text(structured_prompt, options)
        try:
            return self.parse_structured_output(text, format)
        except MalformedOutputError:
            await self.invalidate_cached_text(structured_prompt, options)
            raise

    async def generate_embeddings(self, text: str) -> list[float]:
        """Generate an embedding vector; embeddings are never cached."""
        try:
            return await self.adapter.generate_embeddings(text)
        except Exception as e:
            logger.error(
                "Error generating embeddings",
                provider=self.provider,
                model=self.model,
                text_length=len(text),
                error=str(e),
            )
            raise

    async def health_check(self) -> bool:
        return await self.adapter.health_check()

    async def close(self) -> None:
        """Release the adapter's transport."""
        await self.adapter.close()
