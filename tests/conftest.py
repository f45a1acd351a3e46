"""
Shared test fixtures.

No test talks to a real provider: adapters and the availability prober
are replaced with mocks, and HTTP helpers are patched.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from fin_insights.audit import AuditLogger
from fin_insights.config import (
    AppSettings,
    HuggingFaceSettings,
    OllamaSettings,
    PrimaryAISettings,
    SecondaryAISettings,
    get_settings,
)
from fin_insights.models.features import (
    FinancialInsightsInput,
    FinancialInsightsOutput,
)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_settings(
    primary_key="test-primary-key",
    secondary_key="test-secondary-key",
    hf_token="hf_test_token",
    model_variants="gemini-2.0-flash-exp,gemini-2.0-flash,gemini-1.5-flash,gemini-pro",
    call_timeout_seconds=30.0,
    provision_timeout_seconds=120.0,
    probe_on_check=False,
):
    """Settings container built from explicit values (env is ignored)."""
    return SimpleNamespace(
        primary=PrimaryAISettings(api_key=primary_key, model_variants=model_variants),
        secondary=SecondaryAISettings(api_key=secondary_key),
        ollama=OllamaSettings(provision_timeout_seconds=provision_timeout_seconds),
        huggingface=HuggingFaceSettings(api_token=hf_token, probe_on_check=probe_on_check),
        app=AppSettings(call_timeout_seconds=call_timeout_seconds),
    )


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def audit_logger():
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def insights_request():
    return FinancialInsightsInput(
        income=5000,
        expenses=3000,
        savings=2000,
        spending_by_category={"Food": 800, "Rent": 1500},
        recurring_expenses={"Rent": 1500},
    )


@pytest.fixture
def insights_result():
    return FinancialInsightsOutput(
        summary="You saved 40% of your income.",
        savings_opportunities=["Cook at home more often"],
        spending_habits="Rent is your largest expense.",
    )


@pytest.fixture
def settings_factory():
    return make_settings
