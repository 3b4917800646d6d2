"""Infrastructure-specific exception classes."""

from typing import Any

from .base import ConfigurationError, InfrastructureError


class GenerationError(InfrastructureError):
    """Raised when a provider call fails (transport, status or payload)."""

    def __init__(
        self,
        message: str,
        provider: str,
        original_error: Exception | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize generation error.

        Args:
            message: Error description
            provider: LLM provider name
            original_error: Original exception that caused this error
            details: Extra diagnostic information
        """
        super().__init__(message, details=details)
        self.provider = provider
        self.original_error = original_error


class LLMTimeoutError(GenerationError):
    """Raised when an LLM request times out."""

    pass


class LLMServiceUnavailableError(GenerationError):
    """Raised when an LLM service is temporarily unavailable (5xx, 429, network)."""

    pass


class MalformedOutputError(InfrastructureError):
    """Raised when generated text cannot be parsed into the requested format."""

    def __init__(self, message: str, format: str, raw_output: str) -> None:
        super().__init__(message, details={"format": format})
        self.format = format
        self.raw_output = raw_output


class UnsupportedProviderError(ConfigurationError):
    """Raised when a provider name has no adapter."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unsupported LLM provider: {provider}", details={"provider": provider})
        self.provider = provider


class UnsupportedOperationError(ConfigurationError):
    """Raised when a provider does not offer an operation at all (e.g. embeddings)."""

    def __init__(self, message: str, provider: str, operation: str) -> None:
        super().__init__(message, details={"provider": provider, "operation": operation})
        self.provider = provider
        self.operation = operation


class StoreError(InfrastructureError):
    """Raised when the shared key-value store cannot be reached."""

    pass
