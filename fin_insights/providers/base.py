"""
Provider Adapter Interface

Every AI backend (primary Gemini, secondary GenAI SDK, local Ollama,
Hugging Face) is wrapped by an adapter with the same shape:

    result = await adapter.generate(feature, request, model=None)

IMPORTANT: adapters ALWAYS return a validated result model for the
feature, or raise a ProviderError. They never return raw provider
text, partial results, or canned fallback content.

Adapters are stateless. Each call builds its own client / HTTP session
and releases it before returning.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

from fin_insights.models.attempts import ErrorKind
from fin_insights.models.features import Feature


class ProviderError(Exception):
    """Base for errors raised by adapters and the availability prober."""

    kind: ErrorKind = ErrorKind.PROVIDER_CALL_FAILED

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ProviderUnavailableError(ProviderError):
    """Provider is not configured or not reachable. No call was made."""

    kind = ErrorKind.PROVIDER_UNAVAILABLE


class ProviderCallFailedError(ProviderError):
    """A call was made and did not produce a valid result."""

    kind = ErrorKind.PROVIDER_CALL_FAILED


class ProviderRateLimitError(ProviderCallFailedError):
    """Provider rejected the call with a rate limit / quota error."""


class ResponseValidationError(ProviderCallFailedError):
    """Provider answered, but the answer does not satisfy the result model."""


class ProviderAdapter(ABC):
    """Abstract interface for provider adapters."""

    name: str = "provider"

    @abstractmethod
    async def generate(
        self,
        feature: Feature,
        request: BaseModel,
        model: Optional[str] = None,
    ) -> BaseModel:
        """
        Produce the structured result for `feature` from `request`.

        Args:
            feature: Which AI feature to run
            request: The feature's request model
            model: Model variant to use; adapter default when None

        Raises:
            ProviderCallFailedError: On any network, HTTP, quota or
                validation failure.
        """
        pass
