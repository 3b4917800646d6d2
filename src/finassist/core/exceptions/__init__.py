"""Core exception classes for the finassist LLM layer.

Generation failures, admission rejections and configuration errors live in
separate branches of the hierarchy so callers can tell a blocked request
from a failed one.
"""

from .admission import CircuitOpenError, RateLimitExceededError
from .base import (
    AdmissionError,
    ConfigurationError,
    FinAssistError,
    InfrastructureError,
)
from .infrastructure import (
    GenerationError,
    LLMServiceUnavailableError,
    LLMTimeoutError,
    MalformedOutputError,
    StoreError,
    UnsupportedOperationError,
    UnsupportedProviderError,
)

__all__ = [
    # Base exceptions
    "FinAssistError",
    "AdmissionError",
    "ConfigurationError",
    "InfrastructureError",
    # Infrastructure exceptions
    "GenerationError",
    "LLMTimeoutError",
    "LLMServiceUnavailableError",
    "MalformedOutputError",
    "StoreError",
    # Configuration exceptions
    "UnsupportedProviderError",
    "UnsupportedOperationError",
    # Admission exceptions
    "RateLimitExceededError",
    "CircuitOpenError",
]
