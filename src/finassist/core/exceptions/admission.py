"""Admission-control rejections raised before a provider is invoked."""

from .base import AdmissionError


class RateLimitExceededError(AdmissionError):
    """Raised when a subject has exhausted its request quota for a provider."""

    def __init__(self, provider: str, subject: str, limit: int) -> None:
        super().__init__(
            f"Rate limit exceeded for provider {provider}",
            details={"provider": provider, "subject": subject, "limit": limit},
        )
        self.provider = provider
        self.subject = subject
        self.limit = limit


class CircuitOpenError(AdmissionError):
    """Raised when the circuit breaker for a provider is open."""

    def __init__(self, provider: str, failure_count: int, retry_after_seconds: float) -> None:
        super().__init__(
            f"Circuit breaker is open for provider {provider}",
            details={
                "provider": provider,
                "failure_count": failure_count,
                "retry_after_seconds": round(retry_after_seconds, 1),
            },
        )
        self.provider = provider
        self.failure_count = failure_count
        self.retry_after_seconds = retry_after_seconds
