"""Tests for the caching LLM client."""

import hashlib
from datetime import timedelta

import pytest

from finassist.core.exceptions import ConfigurationError, GenerationError, MalformedOutputError
from finassist.infrastructure.llm import LlmClient

CONFIG = {"model": "test-model", "system_prompt": "Eres FinBot", "cache_ttl": 3600}


@pytest.fixture
def client(adapter, store) -> LlmClient:
    return LlmClient(adapter, CONFIG, store)


class TestLlmClientSetup:
    """Construction and identity."""

    def test_initializes_adapter_with_config(self, adapter, store):
        """Test the adapter receives the client configuration."""
        LlmClient(adapter, CONFIG, store)

        assert adapter.config == CONFIG

    def test_provider_and_model(self, client):
        """Test identity properties."""
        assert client.provider == "counting"
        assert client.model == "test-model"

    def test_cache_requires_store(self, adapter):
        """Test caching without a store is a configuration error."""
        with pytest.raises(ConfigurationError):
            LlmClient(adapter, CONFIG, None)

    def test_no_store_needed_without_cache(self, adapter):
        """Test a cache-less client can run without a store."""
        client = LlmClient(adapter, {**CONFIG, "cache_enabled": False})

        assert client.store is None

    def test_cache_key_layout(self, client):
        """Test the fingerprint covers provider, model, prompt, system prompt and options."""
        md5 = lambda value: hashlib.md5(value.encode()).hexdigest()  # noqa: E731

        key = client.cache_key("hola", {"temperature": 0.2})

        assert key == ":".join(
            ["llm", "counting", "test-model", md5("hola"), md5("Eres FinBot"), md5('{"temperature": 0.2}')]
        )


class TestLlmClientGeneration:
    """Text generation and caching."""

    @pytest.mark.asyncio
    async def test_passes_system_prompt_and_options(self, client, adapter):
        """Test the adapter sees the configured system prompt."""
        result = await client.generate_text("hola", {"temperature": 0.1})

        assert result == "respuesta"
        assert adapter.calls == [{"prompt": "hola", "system_prompt": "Eres FinBot", "options": {"temperature": 0.1}}]

    @pytest.mark.asyncio
    async def test_identical_request_served_from_cache(self, client, adapter):
        """Test a repeated request does not reach the adapter."""
        first = await client.generate_text("hola")
        second = await client.generate_text("hola")

        assert first == second
        assert len(adapter.calls) == 1

    @pytest.mark.asyncio
    async def test_different_options_miss_cache(self, client, adapter):
        """Test options are part of the fingerprint."""
        await client.generate_text("hola", {"temperature": 0.1})
        await client.generate_text("hola", {"temperature": 0.9})
        await client.generate_text("adiós", {"temperature": 0.1})

        assert len(adapter.calls) == 3

    @pytest.mark.asyncio
    async def test_option_order_does_not_matter(self, client, adapter):
        """Test the fingerprint is stable across dict ordering."""
        await client.generate_text("hola", {"a": 1, "b": 2})
        await client.generate_text("hola", {"b": 2, "a": 1})

        assert len(adapter.calls) == 1

    @pytest.mark.asyncio
    async def test_cache_expires_after_ttl(self, client, adapter, frozen_time):
        """Test cached replies lapse after cache_ttl seconds."""
        await client.generate_text("hola")
        frozen_time.tick(timedelta(seconds=3601))
        await client.generate_text("hola")

        assert len(adapter.calls) == 2

    @pytest.mark.asyncio
    async def test_cache_disabled(self, adapter, store):
        """Test every call reaches the adapter when caching is off."""
        client = LlmClient(adapter, {**CONFIG, "cache_enabled": False}, store)

        await client.generate_text("hola")
        await client.generate_text("hola")

        assert len(adapter.calls) == 2
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_empty_reply_not_cached(self, adapter_factory, store):
        """Test empty replies are never cached."""
        adapter = adapter_factory(reply="")
        client = LlmClient(adapter, CONFIG, store)

        await client.generate_text("hola")
        await client.generate_text("hola")

        assert len(adapter.calls) == 2

    @pytest.mark.asyncio
    async def test_adapter_error_propagates_unchanged(self, client, adapter, provider_failure, store):
        """Test failures surface as-is and nothing is cached."""
        adapter.fail_next(provider_failure)

        with pytest.raises(GenerationError) as exc_info:
            await client.generate_text("hola")

        assert exc_info.value is provider_failure
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_get_cached_text(self, client):
        """Test cache lookup without generation."""
        assert await client.get_cached_text("hola") is None

        await client.generate_text("hola")

        assert await client.get_cached_text("hola") == "respuesta"

    @pytest.mark.asyncio
    async def test_clients_share_cache_through_store(self, adapter_factory, store):
        """Test two clients for the same provider and model share cached replies."""
        first_adapter, second_adapter = adapter_factory(), adapter_factory()
        first = LlmClient(first_adapter, CONFIG, store)
        second = LlmClient(second_adapter, CONFIG, store)

        await first.generate_text("hola")
        await second.generate_text("hola")

        assert len(first_adapter.calls) == 1
        assert second_adapter.calls == []


class TestLlmClientStructuredOutput:
    """Structured output formatting and parsing."""

    @pytest.mark.asyncio
    async def test_json_output_parsed(self, adapter_factory, store):
        """Test JSON replies are decoded."""
        client = LlmClient(adapter_factory(reply='{"total": 1500}'), CONFIG, store)

        result = await client.generate_structured_output("resume mis gastos", "json")

        assert result == {"total": 1500}

    @pytest.mark.asyncio
    async def test_json_fences_stripped(self, adapter_factory, store):
        """Test markdown code fences around JSON are removed."""
        client = LlmClient(adapter_factory(reply='```json\n{"ok": true}\n```'), CONFIG, store)

        assert await client.generate_structured_output("x", "json") == {"ok": True}

    @pytest.mark.asyncio
    async def test_json_instructions_appended(self, client, adapter):
        """Test the prompt carries the JSON format instructions."""
        adapter.reply = "{}"

        await client.generate_structured_output("resume", "json")

        prompt = adapter.calls[0]["prompt"]
        assert prompt.startswith("resume\n\n")
        assert "JSON válido" in prompt

    @pytest.mark.asyncio
    async def test_malformed_json_raises(self, adapter_factory, store):
        """Test undecodable JSON raises MalformedOutputError with the raw text."""
        client = LlmClient(adapter_factory(reply="no es json"), CONFIG, store)

        with pytest.raises(MalformedOutputError) as exc_info:
            await client.generate_structured_output("x", "json")

        assert exc_info.value.format == "json"
        assert exc_info.value.raw_output == "no es json"

    @pytest.mark.asyncio
    async def test_malformed_json_not_served_from_cache(self, adapter_factory, store):
        """Test an unparseable reply is dropped so the next call asks the provider again."""
        adapter = adapter_factory(reply="no es json")
        client = LlmClient(adapter, CONFIG, store)
        with pytest.raises(MalformedOutputError):
            await client.generate_structured_output("x", "json")

        adapter.reply = '{"ok": true}'

        assert await client.generate_structured_output("x", "json") == {"ok": True}
        assert len(adapter.calls) == 2
        assert len(store) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("format", "fragment"),
        [
            ("markdown", "formato Markdown"),
            ("html", "HTML válido"),
            ("csv", "formato CSV"),
            ("yaml", "el formato yaml"),
        ],
    )
    async def test_other_formats_return_text(self, client, adapter, format, fragment):
        """Test non-JSON formats are returned verbatim with their instructions in the prompt."""
        result = await client.generate_structured_output("x", format)

        assert result == "respuesta"
        assert fragment in adapter.calls[0]["prompt"]


class TestLlmClientEmbeddings:
    """Embedding pass-through."""

    @pytest.mark.asyncio
    async def test_embeddings_not_cached(self, client, adapter, store):
        """Test embeddings always reach the adapter."""
        assert await client.generate_embeddings("hola") == [0.1, 0.2, 0.3]
        await client.generate_embeddings("hola")

        assert adapter.embedding_calls == 2
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_close_closes_adapter(self, client, adapter):
        """Test close releases the adapter."""
        await client.close()

        assert adapter.closed is True
