"""
Provider Availability

Decides, freshly for every cascade, whether a provider can be tried at all.
Nothing here is cached: a provider that was down for one request gets a new
chance on the next one.

Hosted providers are "available" when they have a usable credential.
The local runtime is available when it answers AND has one of the
preferred models installed; otherwise it can be provisioned on demand
(bounded by OllamaSettings.provision_timeout_seconds).
"""

import asyncio
from typing import Optional

import aiohttp
import structlog
from google import genai
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fin_insights.config import Settings, get_settings
from fin_insights.providers.base import ProviderUnavailableError


logger = structlog.get_logger(__name__)


# Values shipped in example .env files and dev setups, never real keys
PLACEHOLDER_CREDENTIALS = frozenset({
    "development_mock_key",
    "development_placeholder_key",
    "your_api_key_here",
    "changeme",
})


def is_usable_credential(value: Optional[str]) -> bool:
    """True if a credential is present and not a known placeholder."""
    if value is None:
        return False
    candidate = value.strip().lower()
    if not candidate:
        return False
    if candidate in PLACEHOLDER_CREDENTIALS:
        return False
    return not candidate.startswith("your_")


def match_preferred_model(
    installed: list[str],
    preferred: list[str],
) -> Optional[str]:
    """
    Pick the installed model to use.

    An exact match on the preference list wins. Otherwise any installed
    model from a preferred family (the part before ':') is accepted.
    """
    installed_set = set(installed)
    for model in preferred:
        if model in installed_set:
            return model
    for model in preferred:
        family = model.split(":")[0]
        for name in installed:
            if name.split(":")[0] == family:
                return name
    return None


class AvailabilityProber:
    """
    Answers "can this stage be tried right now?" for the orchestrator.

    Usage:
        prober = AvailabilityProber()
        if prober.primary_configured(): ...
        model = await prober.local_reachable()
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()

    # =========================================================================
    # HOSTED PROVIDERS
    # =========================================================================

    def primary_configured(self) -> bool:
        return is_usable_credential(self._settings.primary.api_key)

    def secondary_ready(self) -> bool:
        """Key is usable and the SDK client can be constructed."""
        api_key = self._settings.secondary.api_key
        if not is_usable_credential(api_key):
            return False
        try:
            genai.Client(api_key=api_key)
        except Exception as e:
            logger.warning("secondary_client_unavailable", error=str(e))
            return False
        return True

    async def tertiary_available(self) -> bool:
        """
        Token is usable. With probe_on_check, a one-token request must
        also succeed.
        """
        hf = self._settings.huggingface
        if not is_usable_credential(hf.api_token):
            return False
        if not hf.probe_on_check:
            return True

        timeout = self._settings.ollama.probe_timeout_seconds
        try:
            return await asyncio.wait_for(self._probe_tertiary(), timeout=timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("tertiary_probe_failed", error=str(e) or type(e).__name__)
            return False

    async def _probe_tertiary(self) -> bool:
        hf = self._settings.huggingface
        url = f"{hf.base_url.rstrip('/')}/models/{hf.model}"
        headers = {"Authorization": f"Bearer {hf.api_token}"}
        payload = {"inputs": "ping", "parameters": {"max_new_tokens": 1}}
        async with aiohttp.ClientSession() as session:
            async with session.post(url, json=payload, headers=headers) as response:
                return response.status == 200

    # =========================================================================
    # LOCAL RUNTIME
    # =========================================================================

    async def local_reachable(self) -> Optional[str]:
        """
        Return the installed model to use, or None if the runtime is not
        reachable or has none of the preferred models.
        """
        ollama = self._settings.ollama
        try:
            installed = await asyncio.wait_for(
                self._list_local_models(),
                timeout=ollama.probe_timeout_seconds,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, ProviderUnavailableError) as e:
            logger.info("local_runtime_unreachable", error=str(e) or type(e).__name__)
            return None
        return match_preferred_model(installed, ollama.preferred_model_list)

    async def provision_local(self) -> str:
        """
        Pull the first preferred model that can be pulled.

        Returns:
            The model name now installed.

        Raises:
            ProviderUnavailableError: Runtime unreachable, every pull failed,
                or the provisioning timeout elapsed.
        """
        timeout = self._settings.ollama.provision_timeout_seconds
        try:
            return await asyncio.wait_for(self._provision(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ProviderUnavailableError(
                f"Provisioning did not finish within {timeout:g}s",
                provider="ollama",
            ) from e

    async def _provision(self) -> str:
        preferred = self._settings.ollama.preferred_model_list
        try:
            installed = await self._list_local_models()
        except aiohttp.ClientError as e:
            raise ProviderUnavailableError(
                f"Local runtime not reachable: {e}", provider="ollama"
            ) from e

        already = match_preferred_model(installed, preferred)
        if already:
            return already

        last_error: Optional[Exception] = None
        for model in preferred:
            try:
                logger.info("local_model_pull_started", model=model)
                await self._pull_model(model)
                logger.info("local_model_pulled", model=model)
                return model
            except (aiohttp.ClientError, ProviderUnavailableError) as e:
                logger.warning("local_model_pull_failed", model=model, error=str(e))
                last_error = e

        raise ProviderUnavailableError(
            f"Could not pull any preferred model: {last_error}",
            provider="ollama",
        )

    async def _list_local_models(self) -> list[str]:
        url = f"{self._settings.ollama.base_url.rstrip('/')}/api/tags"
        async with aiohttp.ClientSession() as session:
            async with session.get(url) as response:
                if response.status != 200:
                    raise ProviderUnavailableError(
                        f"Local runtime returned status {response.status}",
                        provider="ollama",
                    )
                data = await _read_json(response, "Model list")
        return parse_model_list(data)

    @retry(
        retry=retry_if_exception_type((aiohttp.ClientError, ProviderUnavailableError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _pull_model(self, model: str) -> None:
        """Pull a model (retried twice on failure)."""
        url = f"{self._settings.ollama.base_url.rstrip('/')}/api/pull"
        async with aiohttp.ClientSession() as session:
            async with session.post(url, json={"name": model, "stream": False}) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ProviderUnavailableError(
                        f"Pull of {model} returned status {response.status}: {error_text[:200]}",
                        provider="ollama",
                    )
                data = await _read_json(response, f"Pull of {model}")
        check_pull_status(model, data)


async def _read_json(response: aiohttp.ClientResponse, what: str):
    try:
        return await response.json(content_type=None)
    except ValueError as e:
        raise ProviderUnavailableError(
            f"{what} response is not valid JSON", provider="ollama"
        ) from e


def parse_model_list(data) -> list[str]:
    """Model names from an /api/tags body: {"models": [{"name": ...}, ...]}."""
    models = data.get("models") if isinstance(data, dict) else None
    if not isinstance(models, list):
        raise ProviderUnavailableError(
            "Local runtime returned an unexpected model list", provider="ollama"
        )
    return [
        item["name"]
        for item in models
        if isinstance(item, dict) and isinstance(item.get("name"), str) and item["name"]
    ]


def check_pull_status(model: str, data) -> None:
    """Raise unless an /api/pull body reports {"status": "success"}."""
    if not isinstance(data, dict):
        raise ProviderUnavailableError(
            f"Pull of {model} returned an unexpected body", provider="ollama"
        )
    if data.get("status") != "success":
        raise ProviderUnavailableError(
            f"Pull of {model} did not complete: {data.get('status') or data.get('error')}",
            provider="ollama",
        )
