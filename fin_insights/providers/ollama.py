"""
Local Provider: Ollama REST API

Calls POST /api/generate with format="json" so the local model answers
with a JSON object in the result model's wire shape. Which model to use
is decided by the availability prober (installed or freshly pulled).
"""

from typing import Optional

import aiohttp
import structlog
from pydantic import BaseModel

from fin_insights.config import OllamaSettings, get_settings
from fin_insights.models.features import Feature
from fin_insights.prompts import build_json_prompt
from fin_insights.providers.base import ProviderAdapter, ProviderCallFailedError
from fin_insights.validation import parse_and_validate


logger = structlog.get_logger(__name__)


class OllamaAdapter(ProviderAdapter):
    """Local inference runtime adapter."""

    name = "ollama"

    def __init__(self, settings: Optional[OllamaSettings] = None):
        self._settings = settings or get_settings().ollama

    def _payload(self, prompt: str, model_name: str) -> dict:
        return {
            "model": model_name,
            "prompt": prompt,
            "format": "json",
            "stream": False,
            "options": {
                "temperature": self._settings.temperature,
                "num_predict": self._settings.num_predict,
            },
        }

    async def _post_generate(self, payload: dict) -> dict:
        url = f"{self._settings.base_url.rstrip('/')}/api/generate"
        async with aiohttp.ClientSession() as session:
            async with session.post(url, json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ProviderCallFailedError(
                        f"Ollama API returned status {response.status}: {error_text[:200]}",
                        provider=self.name,
                    )
                return await response.json()

    async def generate(
        self,
        feature: Feature,
        request: BaseModel,
        model: Optional[str] = None,
    ) -> BaseModel:
        model_name = model or self._settings.preferred_model_list[0]
        prompt = build_json_prompt(feature, request)

        try:
            data = await self._post_generate(self._payload(prompt, model_name))
        except aiohttp.ClientError as e:
            raise ProviderCallFailedError(
                f"Failed to connect to Ollama API: {e}", provider=self.name
            ) from e

        text = data.get("response") if isinstance(data, dict) else None
        logger.debug("ollama_response_received", model=model_name, chars=len(text or ""))
        return parse_and_validate(feature, text, request=request, provider=self.name)
