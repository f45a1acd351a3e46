"""
Financial AI Flows

The entry points the application calls. Each flow:

1. Checks the request carries meaningful data. If not, it raises
   NoDataAvailableError BEFORE any provider is contacted. An empty
   dashboard must not cost an API call.
2. Hands the request to the FallbackOrchestrator.
3. Returns the validated result model.

Callers only ever see three things: a result, NoDataAvailableError, or
AllProvidersFailedError. Use user_message_for() to turn either error
into text for the UI.
"""

from typing import Optional

import structlog
from pydantic import BaseModel

from fin_insights.audit import AuditLogger, create_correlation_id
from fin_insights.models.attempts import ErrorKind
from fin_insights.models.features import (
    CategorizeTransactionInput,
    CategorizeTransactionOutput,
    DetectSpendingAnomaliesInput,
    DetectSpendingAnomaliesOutput,
    Feature,
    FinancialInsightsInput,
    FinancialInsightsOutput,
    PredictIncomeInput,
    PredictIncomeOutput,
    WeeklySummaryInput,
    WeeklySummaryOutput,
)
from fin_insights.orchestrator import (
    AllProvidersFailedError,
    FallbackOrchestrator,
    FlowError,
    NoDataAvailableError,
)


logger = structlog.get_logger(__name__)


NO_DATA_MESSAGE = (
    "There isn't enough financial data yet. Add some transactions and try again."
)
TRY_LATER_MESSAGE = (
    "AI insights are temporarily unavailable. Please try again later."
)


def user_message_for(error: BaseException) -> str:
    """Caller-facing text for a flow error."""
    if getattr(error, "kind", None) == ErrorKind.NO_DATA_AVAILABLE:
        return NO_DATA_MESSAGE
    return TRY_LATER_MESSAGE


class FinancialFlows:
    """
    Owns one orchestrator and exposes one coroutine per feature.

    Usage:
        flows = FinancialFlows()
        insights = await flows.generate_financial_insights(request)
    """

    def __init__(
        self,
        orchestrator: Optional[FallbackOrchestrator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit = audit_logger or AuditLogger()
        self._orchestrator = orchestrator or FallbackOrchestrator(audit_logger=self._audit)

    async def run(self, feature: Feature, request: BaseModel) -> BaseModel:
        """
        Run any feature through the cascade.

        Raises:
            NoDataAvailableError: The request has nothing to analyze.
            AllProvidersFailedError: No provider produced a valid result.
        """
        correlation_id = create_correlation_id()
        self._audit.log_flow_invoked(feature.value, correlation_id)

        if not request.has_meaningful_data():
            self._audit.log_no_data(feature.value, correlation_id)
            raise NoDataAvailableError(feature)

        try:
            outcome = await self._orchestrator.execute(
                feature, request, correlation_id=correlation_id
            )
        except FlowError:
            raise
        except Exception as e:
            logger.exception(
                "flow_unexpected_error",
                feature=feature.value,
                correlation_id=str(correlation_id),
            )
            self._audit.log_error(feature.value, type(e).__name__, str(e), correlation_id)
            raise AllProvidersFailedError(feature, []) from e

        return outcome.result

    async def generate_financial_insights(
        self, request: FinancialInsightsInput
    ) -> FinancialInsightsOutput:
        return await self.run(Feature.FINANCIAL_INSIGHTS, request)

    async def predict_income(self, request: PredictIncomeInput) -> PredictIncomeOutput:
        return await self.run(Feature.INCOME_PREDICTION, request)

    async def detect_spending_anomalies(
        self, request: DetectSpendingAnomaliesInput
    ) -> DetectSpendingAnomaliesOutput:
        return await self.run(Feature.SPENDING_ANOMALIES, request)

    async def generate_weekly_summary(
        self, request: WeeklySummaryInput
    ) -> WeeklySummaryOutput:
        return await self.run(Feature.WEEKLY_SUMMARY, request)

    async def categorize_transaction(
        self, request: CategorizeTransactionInput
    ) -> CategorizeTransactionOutput:
        return await self.run(Feature.TRANSACTION_CATEGORIZATION, request)


# =============================================================================
# MODULE-LEVEL ENTRY POINTS
# =============================================================================
# Each call builds its own FinancialFlows; no state is shared between calls.

async def generate_financial_insights(
    request: FinancialInsightsInput,
) -> FinancialInsightsOutput:
    return await FinancialFlows().generate_financial_insights(request)


async def predict_income(request: PredictIncomeInput) -> PredictIncomeOutput:
    return await FinancialFlows().predict_income(request)


async def detect_spending_anomalies(
    request: DetectSpendingAnomaliesInput,
) -> DetectSpendingAnomaliesOutput:
    return await FinancialFlows().detect_spending_anomalies(request)


async def generate_weekly_summary(request: WeeklySummaryInput) -> WeeklySummaryOutput:
    return await FinancialFlows().generate_weekly_summary(request)


async def categorize_transaction(
    request: CategorizeTransactionInput,
) -> CategorizeTransactionOutput:
    return await FinancialFlows().categorize_transaction(request)
