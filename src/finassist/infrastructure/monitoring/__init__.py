"""Monitoring for the LLM layer."""

from .llm_metrics import LlmMetrics, MetricsConfig, categorize_error

__all__ = ["LlmMetrics", "MetricsConfig", "categorize_error"]
