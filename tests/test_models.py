"""
Tests for Financial Insights

Test strategy:
1. Unit tests for individual components (models, validators, parsers)
2. Cascade tests for the orchestrator and flows (with mocked providers)
3. No real API calls in tests (use mocks)
"""

import json
from uuid import uuid4

import pytest
from pydantic import ValidationError

from fin_insights.models.attempts import (
    STAGE_ORDER,
    AttemptOutcome,
    AttemptRecord,
    ErrorKind,
    ProviderStage,
)
from fin_insights.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from fin_insights.models.features import (
    CategorizeTransactionInput,
    DetectSpendingAnomaliesInput,
    DetectSpendingAnomaliesOutput,
    Feature,
    FinancialInsightsInput,
    FinancialInsightsOutput,
    PredictIncomeInput,
    PredictIncomeOutput,
    WeeklySummaryInput,
    result_model_for,
)
from fin_insights.providers.base import ResponseValidationError
from fin_insights.validation import extract_json_object, parse_and_validate, validate_result


class TestRequestModels:
    """Tests for feature request models."""

    def test_insights_accepts_wire_names(self):
        """Test camelCase input is accepted."""
        request = FinancialInsightsInput.model_validate({
            "income": 100,
            "spendingByCategory": {"Food": 20},
            "recurringExpenses": {},
        })
        assert request.spending_by_category == {"Food": 20}

    def test_request_is_frozen(self):
        """Test requests cannot be modified after creation."""
        request = FinancialInsightsInput(income=100)
        with pytest.raises(ValidationError):
            request.income = 200

    def test_insights_meaningful_data(self):
        assert FinancialInsightsInput().has_meaningful_data() is False
        assert FinancialInsightsInput(expenses=10).has_meaningful_data() is True
        assert FinancialInsightsInput(
            spending_by_category={"Food": 0}
        ).has_meaningful_data() is True
        # Savings alone is not enough
        assert FinancialInsightsInput(savings=100).has_meaningful_data() is False

    def test_prediction_accepts_json_string(self):
        """Test the JSON-encoded history form."""
        request = PredictIncomeInput.model_validate({
            "historicalIncomeData": json.dumps([
                {"date": "2024-01-01", "income": 1000},
                {"date": "2024-02-01", "income": 1200},
            ]),
        })
        assert len(request.historical_income) == 2
        assert request.historical_income[1].income == 1200

    def test_prediction_rejects_bad_json(self):
        with pytest.raises(ValidationError):
            PredictIncomeInput.model_validate({"historicalIncomeData": "[not json"})

    def test_prediction_payload_uses_wire_names(self):
        request = PredictIncomeInput(
            historical_income=[{"date": "2024-01-01", "income": 1000}],
            seasonality="Flat",
        )
        payload = request.to_prompt_payload()
        assert payload["historicalIncomeData"] == [{"date": "2024-01-01", "income": 1000}]
        assert payload["seasonality"] == "Flat"

    def test_anomalies_meaningful_data(self):
        assert DetectSpendingAnomaliesInput(
            average_spending_by_category={"Food": 10}
        ).has_meaningful_data() is False

    def test_weekly_previous_week_counts(self):
        assert WeeklySummaryInput(previous_week_expenses=5).has_meaningful_data() is True

    def test_categorize_type_alias(self):
        request = CategorizeTransactionInput(
            description="Grab ride", amount=250, type="expense",
            existing_categories=("Transportation",),
        )
        assert request.is_known_category("  transportation ") is True
        assert request.is_known_category("Travel") is False

    def test_categorize_rejects_negative_amount(self):
        with pytest.raises(ValidationError):
            CategorizeTransactionInput(description="x", amount=-1, type="expense")


class TestResultModels:
    """Tests for result models: every field required, no blank text."""

    def test_blank_text_rejected(self):
        with pytest.raises(ValidationError):
            FinancialInsightsOutput(
                summary="   ",
                savings_opportunities=["a"],
                spending_habits="b",
            )

    def test_empty_opportunities_rejected(self):
        with pytest.raises(ValidationError):
            FinancialInsightsOutput(summary="a", savings_opportunities=[], spending_habits="b")

    def test_negative_prediction_rejected(self):
        with pytest.raises(ValidationError):
            PredictIncomeOutput(predicted_income=-5, confidence_interval="x", factors="y")

    def test_empty_anomaly_list_allowed(self):
        assert DetectSpendingAnomaliesOutput(anomalies=[]).anomalies == []

    def test_result_model_registry(self):
        assert result_model_for(Feature.WEEKLY_SUMMARY).__name__ == "WeeklySummaryOutput"
        assert len(Feature) == 5


class TestValidation:
    """Tests for provider response validation."""

    def test_extract_from_fenced_text(self):
        text = 'Here you go:\n```json\n{"a": {"b": 1}}\n```'
        assert extract_json_object(text) == {"a": {"b": 1}}

    @pytest.mark.parametrize("text", [None, "", "no json here", "{broken", "[1, 2]"])
    def test_extract_failures(self, text):
        with pytest.raises(ResponseValidationError):
            extract_json_object(text)

    def test_validate_incomplete(self):
        with pytest.raises(ResponseValidationError, match="spendingHabits|spending_habits"):
            validate_result(
                Feature.FINANCIAL_INSIGHTS,
                {"summary": "ok", "savingsOpportunities": ["x"]},
            )

    def test_parse_and_validate(self):
        result = parse_and_validate(
            Feature.WEEKLY_SUMMARY,
            '{"summary": "s", "trends": "t", "opportunities": "o"}',
        )
        assert result.trends == "t"

    def test_new_category_always_recomputed(self):
        request = CategorizeTransactionInput(
            description="Jollibee", amount=300, type="expense",
            existing_categories=("Food & Dining",),
        )
        result = validate_result(
            Feature.TRANSACTION_CATEGORIZATION,
            {
                "category": "Food & Dining",
                "confidence": 0.9,
                "reason": "Restaurant",
                "alternativeCategories": [],
                "isNewCategory": True,
            },
            request=request,
        )
        assert result.is_new_category is False


class TestAttemptRecords:
    """Tests for attempt records."""

    def test_stage_order(self):
        assert STAGE_ORDER[0] == ProviderStage.PRIMARY
        assert STAGE_ORDER[-1] == ProviderStage.TERTIARY

    def test_unavailable_is_not_a_call(self):
        record = AttemptRecord(
            stage=ProviderStage.SECONDARY,
            provider="google-genai",
            outcome=AttemptOutcome.UNAVAILABLE,
            error_kind=ErrorKind.PROVIDER_UNAVAILABLE,
            error_detail="no key",
        )
        assert record.made_call is False
        assert record.succeeded is False
        assert "no key" in record.describe()

    def test_to_log_dict(self):
        record = AttemptRecord(
            stage=ProviderStage.LOCAL,
            provider="ollama",
            model="gemma2:2b",
            outcome=AttemptOutcome.SUCCESS,
            elapsed_seconds=1.23456,
        )
        log_dict = record.to_log_dict()
        assert log_dict["stage"] == "local"
        assert log_dict["elapsed_seconds"] == 1.235
        assert log_dict["error_kind"] is None


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.CASCADE_STARTED,
            description="Cascade started",
        )
        assert event.event_type == AuditEventType.CASCADE_STARTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEventBuilder.cascade_started("weekly_summary", correlation_id)
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "cascade_started"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_failed_attempt_event(self):
        """Test AuditEventBuilder.attempt_finished for a failed call."""
        record = AttemptRecord(
            stage=ProviderStage.PRIMARY,
            provider="gemini",
            model="gemini-pro",
            outcome=AttemptOutcome.CALL_FAILED,
            error_kind=ErrorKind.PROVIDER_CALL_FAILED,
            error_detail="quota",
        )
        event = AuditEventBuilder.attempt_finished("financial_insights", record, uuid4())
        assert event.event_type == AuditEventType.ATTEMPT_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "PROVIDER_CALL_FAILED"

    def test_unavailable_attempt_event(self):
        record = AttemptRecord(
            stage=ProviderStage.TERTIARY,
            provider="huggingface",
            outcome=AttemptOutcome.UNAVAILABLE,
            error_kind=ErrorKind.PROVIDER_UNAVAILABLE,
        )
        event = AuditEventBuilder.attempt_finished("weekly_summary", record, uuid4())
        assert event.event_type == AuditEventType.PROVIDER_UNAVAILABLE

    def test_exhausted_event_lists_attempts(self):
        records = [
            AttemptRecord(
                stage=stage,
                provider="p",
                outcome=AttemptOutcome.UNAVAILABLE,
            )
            for stage in STAGE_ORDER
        ]
        event = AuditEventBuilder.cascade_exhausted("weekly_summary", records, uuid4())
        assert event.severity == AuditSeverity.ERROR
        assert len(event.details["attempts"]) == 5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
