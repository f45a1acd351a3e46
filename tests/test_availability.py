"""
Tests for provider availability checks and local provisioning.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from fin_insights.providers.availability import (
    AvailabilityProber,
    check_pull_status,
    is_usable_credential,
    match_preferred_model,
    parse_model_list,
)
from fin_insights.providers.base import ProviderUnavailableError


class TestCredentials:
    """Placeholder detection."""

    @pytest.mark.parametrize(
        "value",
        [
            None,
            "",
            "   ",
            "development_mock_key",
            "development_placeholder_key",
            "your_api_key_here",
            "YOUR_GOOGLE_KEY",
            "changeme",
        ],
    )
    def test_unusable(self, value):
        assert is_usable_credential(value) is False

    def test_real_looking_key(self):
        assert is_usable_credential("AIzaSyD-real-looking-key") is True


class TestModelMatching:
    """Picking an installed local model."""

    def test_exact_match_in_preference_order(self):
        installed = ["mistral:7b", "gemma:2b"]
        preferred = ["gemma2:2b", "gemma:2b", "mistral:7b"]
        assert match_preferred_model(installed, preferred) == "gemma:2b"

    def test_family_prefix_match(self):
        installed = ["llama3.2:3b"]
        assert match_preferred_model(installed, ["gemma2:2b", "llama3.2:1b"]) == "llama3.2:3b"

    def test_no_match(self):
        assert match_preferred_model(["qwen2:7b"], ["gemma2:2b"]) is None


def mock_session(status=200, json_value=None, json_error=None):
    """aiohttp.ClientSession replacement whose get/post answer with one response."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_value, side_effect=json_error)
    response_cm = MagicMock()
    response_cm.__aenter__ = AsyncMock(return_value=response)
    response_cm.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.get = MagicMock(return_value=response_cm)
    session.post = MagicMock(return_value=response_cm)
    session_cm = MagicMock()
    session_cm.__aenter__ = AsyncMock(return_value=session)
    session_cm.__aexit__ = AsyncMock(return_value=False)
    return session_cm


class TestLocalPayloads:
    """Bodies from the local runtime that are not the expected shape."""

    def test_model_list(self):
        data = {"models": [{"name": "gemma2:2b"}, {"size": 1}, "junk", {"name": ""}]}
        assert parse_model_list(data) == ["gemma2:2b"]

    @pytest.mark.parametrize("data", [{"models": None}, [], None, {"models": "gemma2:2b"}])
    def test_malformed_model_list(self, data):
        with pytest.raises(ProviderUnavailableError):
            parse_model_list(data)

    @pytest.mark.parametrize("data", [["success"], "success", {"status": "pulling"}])
    def test_pull_not_successful(self, data):
        with pytest.raises(ProviderUnavailableError):
            check_pull_status("gemma2:2b", data)

    def test_pull_success(self):
        check_pull_status("gemma2:2b", {"status": "success"})

    @pytest.mark.asyncio
    async def test_null_model_list_means_unreachable(self, settings):
        prober = AvailabilityProber(settings)
        with patch(
            "fin_insights.providers.availability.aiohttp.ClientSession",
            return_value=mock_session(json_value={"models": None}),
        ):
            assert await prober.local_reachable() is None

    @pytest.mark.asyncio
    async def test_invalid_json_model_list(self, settings):
        prober = AvailabilityProber(settings)
        with patch(
            "fin_insights.providers.availability.aiohttp.ClientSession",
            return_value=mock_session(json_error=json.JSONDecodeError("bad", "{", 0)),
        ):
            with pytest.raises(ProviderUnavailableError, match="not valid JSON"):
                await prober._list_local_models()


class TestHostedAvailability:
    """Configuration-based checks for hosted providers."""

    def test_primary_configured(self, settings_factory):
        assert AvailabilityProber(settings_factory()).primary_configured() is True
        assert AvailabilityProber(
            settings_factory(primary_key="development_mock_key")
        ).primary_configured() is False

    def test_secondary_needs_constructible_client(self, settings_factory):
        prober = AvailabilityProber(settings_factory())
        with patch("fin_insights.providers.availability.genai.Client") as client:
            assert prober.secondary_ready() is True
        client.assert_called_once_with(api_key="test-secondary-key")

    def test_secondary_client_failure(self, settings_factory):
        prober = AvailabilityProber(settings_factory())
        with patch(
            "fin_insights.providers.availability.genai.Client",
            side_effect=ValueError("bad key format"),
        ):
            assert prober.secondary_ready() is False

    def test_secondary_placeholder_key_skips_client(self, settings_factory):
        prober = AvailabilityProber(settings_factory(secondary_key="changeme"))
        with patch("fin_insights.providers.availability.genai.Client") as client:
            assert prober.secondary_ready() is False
        client.assert_not_called()

    @pytest.mark.asyncio
    async def test_tertiary_token_only(self, settings_factory):
        prober = AvailabilityProber(settings_factory())
        assert await prober.tertiary_available() is True
        prober = AvailabilityProber(settings_factory(hf_token=None))
        assert await prober.tertiary_available() is False

    @pytest.mark.asyncio
    async def test_tertiary_probe_failure(self, settings_factory):
        prober = AvailabilityProber(settings_factory(probe_on_check=True))
        with patch.object(
            prober, "_probe_tertiary",
            AsyncMock(side_effect=aiohttp.ClientConnectionError("offline")),
        ):
            assert await prober.tertiary_available() is False


class TestLocalRuntime:
    """Reachability and provisioning of the local runtime."""

    @pytest.mark.asyncio
    async def test_reachable_with_preferred_model(self, settings):
        prober = AvailabilityProber(settings)
        with patch.object(
            prober, "_list_local_models", AsyncMock(return_value=["phi3:mini", "gemma2:2b"])
        ):
            assert await prober.local_reachable() == "gemma2:2b"

    @pytest.mark.asyncio
    async def test_unreachable(self, settings):
        prober = AvailabilityProber(settings)
        with patch.object(
            prober, "_list_local_models",
            AsyncMock(side_effect=aiohttp.ClientConnectionError("refused")),
        ):
            assert await prober.local_reachable() is None

    @pytest.mark.asyncio
    async def test_reachable_without_models(self, settings):
        prober = AvailabilityProber(settings)
        with patch.object(prober, "_list_local_models", AsyncMock(return_value=[])):
            assert await prober.local_reachable() is None

    @pytest.mark.asyncio
    async def test_provision_pulls_first_pullable_model(self, settings):
        prober = AvailabilityProber(settings)
        pull = AsyncMock(side_effect=[
            ProviderUnavailableError("not found", provider="ollama"),
            None,
        ])
        with patch.object(prober, "_list_local_models", AsyncMock(return_value=[])), \
                patch.object(prober, "_pull_model", pull):
            model = await prober.provision_local()

        assert model == "gemma:2b"
        assert [c.args[0] for c in pull.await_args_list] == ["gemma2:2b", "gemma:2b"]

    @pytest.mark.asyncio
    async def test_provision_unreachable_runtime(self, settings):
        prober = AvailabilityProber(settings)
        with patch.object(
            prober, "_list_local_models",
            AsyncMock(side_effect=aiohttp.ClientConnectionError("refused")),
        ):
            with pytest.raises(ProviderUnavailableError):
                await prober.provision_local()

    @pytest.mark.asyncio
    async def test_provision_all_pulls_fail(self, settings):
        prober = AvailabilityProber(settings)
        with patch.object(prober, "_list_local_models", AsyncMock(return_value=[])), \
                patch.object(
                    prober, "_pull_model",
                    AsyncMock(side_effect=ProviderUnavailableError("disk full")),
                ):
            with pytest.raises(ProviderUnavailableError, match="Could not pull"):
                await prober.provision_local()

    @pytest.mark.asyncio
    async def test_provision_is_bounded(self, settings_factory):
        async def slow_pull(model):
            await asyncio.sleep(5)

        prober = AvailabilityProber(settings_factory(provision_timeout_seconds=0.05))
        with patch.object(prober, "_list_local_models", AsyncMock(return_value=[])), \
                patch.object(prober, "_pull_model", AsyncMock(side_effect=slow_pull)):
            with pytest.raises(ProviderUnavailableError, match="did not finish"):
                await prober.provision_local()
