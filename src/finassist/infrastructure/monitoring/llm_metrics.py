"""Prometheus metrics for LLM provider traffic."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from ...core.exceptions import LLMServiceUnavailableError, LLMTimeoutError

logger = structlog.get_logger(__name__)

CIRCUIT_STATE_VALUES = {"closed": 0, "open": 1, "half_open": 2}


def categorize_error(error: Exception) -> str:
    """Bucket an exception into a coarse error type for the errors counter."""
    message = str(error).lower()

    if isinstance(error, LLMTimeoutError) or "timeout" in message or "time out" in message:
        return "timeout"
    if "rate limit" in message or "429" in message:
        return "rate_limit"
    if "authentication" in message or "401" in message:
        return "authentication"
    if "connection" in message or "network" in message:
        return "connection"
    if isinstance(error, LLMServiceUnavailableError) or "service unavailable" in message or "503" in message:
        return "service_unavailable"
    return "unknown"


@dataclass
class MetricsConfig:
    """Configuration for LLM metrics."""

    enabled: bool = True
    registry: CollectorRegistry | None = None
    metric_prefix: str = "llm"


class LlmMetrics:
    """Per-instance Prometheus registry tracking requests, errors, latency and breaker state."""

    def __init__(self, config: MetricsConfig | None = None) -> None:
        self.config = config or MetricsConfig()
        self.registry = self.config.registry or CollectorRegistry()
        self._init_prometheus_metrics()

    def _init_prometheus_metrics(self) -> None:
        prefix = self.config.metric_prefix

        self.requests_total = Counter(
            f"{prefix}_requests_total",
            "Total LLM requests served, by provider and cache outcome",
            labelnames=["provider", "cache_hit"],
            registry=self.registry,
        )

        self.errors_total = Counter(
            f"{prefix}_errors_total",
            "Total failed LLM requests by provider and error type",
            labelnames=["provider", "error_type"],
            registry=self.registry,
        )

        self.request_duration = Histogram(
            f"{prefix}_request_duration_seconds",
            "Provider call duration in seconds",
            labelnames=["provider"],
            registry=self.registry,
        )

        self.circuit_breaker_state = Gauge(
            f"{prefix}_circuit_breaker_state",
            "Circuit breaker state (0=closed, 1=open, 2=half-open)",
            labelnames=["provider"],
            registry=self.registry,
        )

        self.rejections_total = Counter(
            f"{prefix}_rejections_total",
            "Requests rejected before reaching the provider",
            labelnames=["provider", "reason"],
            registry=self.registry,
        )

        logger.debug("Prometheus metrics initialized", prefix=prefix)

    def record_request(self, provider: str, duration_seconds: float, cache_hit: bool = False) -> None:
        """Record a successfully served request."""
        if not self.config.enabled:
            return

        self.requests_total.labels(provider=provider, cache_hit=str(cache_hit).lower()).inc()
        if not cache_hit:
            self.request_duration.labels(provider=provider).observe(duration_seconds)

    def record_error(self, provider: str, error: Exception, duration_seconds: float | None = None) -> str:
        """Record a failed provider call.

        Returns:
            The error category used as label
        """
        error_type = categorize_error(error)
        if not self.config.enabled:
            return error_type

        self.errors_total.labels(provider=provider, error_type=error_type).inc()
        if duration_seconds is not None:
            self.request_duration.labels(provider=provider).observe(duration_seconds)

        logger.debug("LLM error recorded", provider=provider, error_type=error_type)
        return error_type

    def record_rejection(self, provider: str, reason: str) -> None:
        """Record an admission rejection (``rate_limit`` or ``circuit_open``)."""
        if self.config.enabled:
            self.rejections_total.labels(provider=provider, reason=reason).inc()

    def set_circuit_breaker_state(self, provider: str, state: Any) -> None:
        """Publish the breaker state as 0 (closed), 1 (open) or 2 (half-open)."""
        if not self.config.enabled:
            return
        self.circuit_breaker_state.labels(provider=provider).set(CIRCUIT_STATE_VALUES[getattr(state, "value", state)])

    def _sample(self, name: str, labels: dict[str, str]) -> float:
        return self.registry.get_sample_value(name, labels) or 0.0

    def get_summary(self, provider: str) -> dict[str, Any]:
        """Totals for one provider as plain numbers."""
        prefix = self.config.metric_prefix
        hits = self._sample(f"{prefix}_requests_total", {"provider": provider, "cache_hit": "true"})
        misses = self._sample(f"{prefix}_requests_total", {"provider": provider, "cache_hit": "false"})

        errors_by_type: dict[str, int] = {}
        for metric in self.errors_total.collect():
            for sample in metric.samples:
                if sample.name.endswith("_total") and sample.labels.get("provider") == provider and sample.value:
                    errors_by_type[sample.labels["error_type"]] = int(sample.value)
        errors = sum(errors_by_type.values())

        attempts = misses + errors
        return {
            "provider": provider,
            "total_requests": int(hits + misses),
            "cache_hits": int(hits),
            "errors": errors,
            "errors_by_type": errors_by_type,
            "error_rate": round(errors / attempts, 4) if attempts else 0.0,
            "rejections": {
                reason: int(self._sample(f"{prefix}_rejections_total", {"provider": provider, "reason": reason}))
                for reason in ("rate_limit", "circuit_open")
            },
        }

    def export(self) -> str:
        """Render all metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry).decode("utf-8")

    def reset(self) -> None:
        """Drop all recorded values (used by tests and the CLI)."""
        self.registry = CollectorRegistry()
        self._init_prometheus_metrics()
        logger.warning("All LLM metrics have been reset")
