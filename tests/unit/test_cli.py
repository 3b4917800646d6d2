"""Tests for the finassist-llm command line."""

import pytest

from finassist.cli import build_parser, main
from finassist.core.exceptions import GenerationError
from finassist.infrastructure.llm import MockAdapter


@pytest.fixture(autouse=True)
def mock_environment(monkeypatch):
    """Run every command against the mock provider and an in-memory store."""
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("LOG_CONSOLE_ENABLED", "false")


class TestParser:
    """Argument parsing."""

    def test_command_required(self):
        """Test a subcommand must be given."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_status_defaults_to_global_subject(self):
        """Test status reports on the shared quota by default."""
        args = build_parser().parse_args(["status"])

        assert args.user == "global"
        assert args.provider is None


class TestCommands:
    """End-to-end command runs."""

    def test_text_prompt(self, capsys):
        """Test a plain prompt prints the reply."""
        assert main(["test", "--provider", "mock", "--prompt", "hola"]) == 0

        output = capsys.readouterr().out
        assert "mock" in output
        assert "FinBot" in output

    def test_json_format(self, capsys):
        """Test structured output is printed as JSON."""
        assert main(["test", "--prompt", "resume mis gastos", "--format", "json", "--user", "u1"]) == 0

        output = capsys.readouterr().out
        assert "Formato de salida: json" in output
        assert '"confidence": 0.95' in output

    def test_provider_failure_returns_one(self, monkeypatch, capsys):
        """Test a provider error is reported with exit code 1."""

        async def failing(self, prompt, system_prompt="", options=None):
            raise GenerationError("Mock adapter simulated failure", provider="mock")

        monkeypatch.setattr(MockAdapter, "generate_text", failing)

        assert main(["test", "--prompt", "hola"]) == 1
        assert "Mock adapter simulated failure" in capsys.readouterr().out

    def test_unsupported_provider_returns_two(self, capsys):
        """Test configuration errors exit with code 2."""
        assert main(["test", "--provider", "nope", "--prompt", "hola"]) == 2
        assert "Unsupported LLM provider" in capsys.readouterr().out

    def test_status(self, capsys):
        """Test status lists every provider with a closed circuit."""
        assert main(["status"]) == 0

        output = capsys.readouterr().out
        for provider in ("ollama", "openai", "openrouter", "mock"):
            assert provider in output
        assert "closed" in output

    def test_reset(self, capsys):
        """Test reset closes the circuit and clears the requested keys."""
        assert main(["reset", "--provider", "mock", "--cache", "--rate-limits"]) == 0

        output = capsys.readouterr().out
        assert "reset" in output
        assert "cached responses" in output
        assert "rate-limit keys" in output
