"""finassist: resilient LLM client layer for a personal-finance assistant."""

__version__ = "0.1.0"
