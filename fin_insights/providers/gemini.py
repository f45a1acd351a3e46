"""
Primary Provider: Gemini via google-generativeai

Each call builds a fresh GenerativeModel binding for the requested model
variant and asks for a JSON answer in the result model's wire shape.
"""

from typing import Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions
from pydantic import BaseModel

from fin_insights.config import PrimaryAISettings, get_settings
from fin_insights.models.features import Feature
from fin_insights.prompts import build_json_prompt
from fin_insights.providers.base import (
    ProviderAdapter,
    ProviderCallFailedError,
    ProviderRateLimitError,
)
from fin_insights.validation import parse_and_validate


logger = structlog.get_logger(__name__)


class GeminiAdapter(ProviderAdapter):
    """Primary hosted model adapter."""

    name = "gemini"

    def __init__(self, settings: Optional[PrimaryAISettings] = None):
        self._settings = settings or get_settings().primary

    def _build_model(self, model_name: str) -> genai.GenerativeModel:
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_output_tokens,
                "response_mime_type": "application/json",
            },
        )

    async def generate(
        self,
        feature: Feature,
        request: BaseModel,
        model: Optional[str] = None,
    ) -> BaseModel:
        model_name = model or self._settings.default_model
        prompt = build_json_prompt(feature, request)

        try:
            response = await self._build_model(model_name).generate_content_async(prompt)
            text = response.text
        except google_exceptions.ResourceExhausted as e:
            raise ProviderRateLimitError(
                f"{model_name} quota exhausted: {e}", provider=self.name
            ) from e
        except google_exceptions.GoogleAPIError as e:
            raise ProviderCallFailedError(
                f"{model_name} call failed: {e}", provider=self.name
            ) from e
        except ValueError as e:
            # response.text raises when the candidate was blocked or empty
            raise ProviderCallFailedError(
                f"{model_name} returned no text: {e}", provider=self.name
            ) from e

        logger.debug("gemini_response_received", model=model_name, chars=len(text or ""))
        return parse_and_validate(feature, text, request=request, provider=self.name)
