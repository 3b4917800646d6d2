"""Base exception classes for the finassist LLM layer."""

from typing import Any


class FinAssistError(Exception):
    """Base exception for all finassist errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the exception."""
        if self.details:
            return f"{self.message}. Details: {self.details}"
        return self.message


class ConfigurationError(FinAssistError):
    """Base class for configuration errors raised at construction time."""

    pass


class InfrastructureError(FinAssistError):
    """Base class for infrastructure layer errors."""

    pass


class AdmissionError(FinAssistError):
    """Base class for policy rejections raised before a provider is called."""

    pass
