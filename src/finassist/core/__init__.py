"""Core module containing cross-cutting concerns."""

from .config import Settings
from .exceptions import (
    AdmissionError,
    CircuitOpenError,
    ConfigurationError,
    FinAssistError,
    GenerationError,
    InfrastructureError,
    MalformedOutputError,
    RateLimitExceededError,
    UnsupportedProviderError,
)

__all__ = [
    # Configuration
    "Settings",
    # Exceptions
    "FinAssistError",
    "AdmissionError",
    "ConfigurationError",
    "InfrastructureError",
    "GenerationError",
    "MalformedOutputError",
    "UnsupportedProviderError",
    "RateLimitExceededError",
    "CircuitOpenError",
]
