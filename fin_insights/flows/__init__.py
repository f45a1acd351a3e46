"""Flow entry points for the AI features."""

from fin_insights.flows.financial_flows import (
    FinancialFlows,
    categorize_transaction,
    detect_spending_anomalies,
    generate_financial_insights,
    generate_weekly_summary,
    predict_income,
    user_message_for,
)
from fin_insights.orchestrator import (
    AllProvidersFailedError,
    FlowError,
    NoDataAvailableError,
)

__all__ = [
    "AllProvidersFailedError",
    "FinancialFlows",
    "FlowError",
    "NoDataAvailableError",
    "categorize_transaction",
    "detect_spending_anomalies",
    "generate_financial_insights",
    "generate_weekly_summary",
    "predict_income",
    "user_message_for",
]
