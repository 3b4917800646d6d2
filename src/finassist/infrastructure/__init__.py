"""Infrastructure layer: storage, LLM providers and monitoring."""
