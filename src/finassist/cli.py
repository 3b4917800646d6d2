"""Command line tools for the LLM layer.

Usage:
    finassist-llm test --provider mock --prompt "hola"
    finassist-llm test --format json
    finassist-llm status --provider ollama --user 42
    finassist-llm reset --provider ollama --cache
"""

from __future__ import annotations

import argparse
import asyncio
import json
import time
from collections.abc import Sequence

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from .core.config import Settings
from .core.exceptions import FinAssistError
from .infrastructure.llm import LlmClientFactory
from .infrastructure.llm.resilience.rate_limiter import CACHE_PREFIX as RATE_LIMIT_PREFIX
from .infrastructure.llm.resilience.rate_limiter import DEFAULT_SUBJECT

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="finassist-llm", description="Inspect and exercise the LLM layer")
    subparsers = parser.add_subparsers(dest="command", required=True)

    test = subparsers.add_parser("test", help="Send one prompt through the configured provider")
    test.add_argument("--provider", help="Provider to use (defaults to LLM_PROVIDER)")
    test.add_argument("--format", help="Structured output format (json, markdown, html, csv, ...)")
    test.add_argument("--prompt", help="Prompt text (asked interactively when omitted)")
    test.add_argument("--user", help="Rate-limit subject for the request")

    status = subparsers.add_parser("status", help="Show circuit breaker and quota state")
    status.add_argument("--provider", help="Provider to inspect (all supported providers when omitted)")
    status.add_argument("--user", default=DEFAULT_SUBJECT, help="Rate-limit subject to report on")

    reset = subparsers.add_parser("reset", help="Close a provider's circuit breaker")
    reset.add_argument("--provider", help="Provider to reset (defaults to LLM_PROVIDER)")
    reset.add_argument("--cache", action="store_true", help="Also drop the provider's cached responses")
    reset.add_argument("--rate-limits", action="store_true", help="Also drop the provider's request windows")

    return parser


async def run_test(factory: LlmClientFactory, args: argparse.Namespace) -> int:
    client = factory.create_resilient(args.provider)
    console.print(f"Probando LLM con proveedor: [bold]{client.provider}[/bold] ({client.model})")
    prompt = args.prompt or Prompt.ask("Introduce un prompt para probar el LLM")

    options = {"user_id": args.user} if args.user else None
    started = time.perf_counter()
    try:
        if args.format:
            console.print(f"Formato de salida: {args.format}")
            result = await client.generate_structured_output(prompt, args.format, options)
        else:
            result = await client.generate_text(prompt, options)
    except FinAssistError as e:
        console.print("[red]Error al comunicarse con el LLM:[/red]")
        console.print(str(e), markup=False)
        return 1
    finally:
        await client.close()

    console.print(f"Tiempo de ejecución: {time.perf_counter() - started:.2f} segundos\n")
    console.print("Respuesta:", style="bold")
    if isinstance(result, str):
        console.print(result, markup=False)
    else:
        console.print_json(json.dumps(result, ensure_ascii=False))
    return 0


async def run_status(factory: LlmClientFactory, args: argparse.Namespace) -> int:
    providers = [args.provider] if args.provider else factory.get_supported_providers()

    table = Table(title=f"LLM providers (subject: {args.user})")
    for column in ("Provider", "Circuit", "Failures", "Remaining", "Window resets"):
        table.add_column(column)

    for provider in providers:
        breaker, limiter = factory.create_policies(provider)
        status = await breaker.get_status(provider)
        window = await limiter.get_window(provider, args.user)
        table.add_row(
            provider,
            status["status"],
            f"{status['failure_count']}/{status['failure_threshold']}",
            f"{window.remaining}/{window.limit}",
            time.strftime("%H:%M:%S", time.localtime(window.resets_at)) if window.resets_at else "-",
        )

    console.print(table)
    return 0


async def run_reset(factory: LlmClientFactory, args: argparse.Namespace) -> int:
    provider = (args.provider or factory.llm_settings.provider.value).lower()
    breaker, _ = factory.create_policies(provider)

    await breaker.reset(provider)
    console.print(f"Circuit breaker for [bold]{provider}[/bold] reset")

    if args.cache:
        removed = await factory.store.clear(f"llm:{provider}:")
        console.print(f"Removed {removed} cached responses")
    if args.rate_limits:
        removed = await factory.store.clear(f"{RATE_LIMIT_PREFIX}:{provider}:")
        console.print(f"Removed {removed} rate-limit keys")
    return 0


COMMANDS = {"test": run_test, "status": run_status, "reset": run_reset}


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    factory = LlmClientFactory(settings)
    try:
        return await COMMANDS[args.command](factory, args)
    finally:
        await factory.store.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for ``finassist-llm``."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    settings.setup_logging()

    try:
        return asyncio.run(_run(args, settings))
    except FinAssistError as e:
        console.print(f"[red]{e.message}[/red]")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
