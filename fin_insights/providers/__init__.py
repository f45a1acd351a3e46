"""
AI provider adapters.

Adapters live in their own modules (gemini, genai_sdk, ollama,
huggingface) and are imported from there.
"""

from fin_insights.providers.base import (
    ProviderAdapter,
    ProviderCallFailedError,
    ProviderError,
    ProviderRateLimitError,
    ProviderUnavailableError,
    ResponseValidationError,
)

__all__ = [
    "ProviderAdapter",
    "ProviderCallFailedError",
    "ProviderError",
    "ProviderRateLimitError",
    "ProviderUnavailableError",
    "ResponseValidationError",
]
