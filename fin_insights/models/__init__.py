"""
Data Models Package

Pydantic models for feature requests and results, cascade attempt records,
audit events and the transactions used to prepare requests.
"""

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
    FEATURE_SPECS,
    CategorizeTransactionInput,
    CategorizeTransactionOutput,
    DetectSpendingAnomaliesInput,
    DetectSpendingAnomaliesOutput,
    Feature,
    FinancialInsightsInput,
    FinancialInsightsOutput,
    IncomeDataPoint,
    PredictIncomeInput,
    PredictIncomeOutput,
    SpendingAnomaly,
    TransactionType,
    WeeklySummaryInput,
    WeeklySummaryOutput,
    result_model_for,
)
from fin_insights.models.transactions import (
    CategoryShare,
    Transaction,
    TransactionAggregation,
)

__all__ = [
    # Feature models
    "FEATURE_SPECS",
    "CategorizeTransactionInput",
    "CategorizeTransactionOutput",
    "DetectSpendingAnomaliesInput",
    "DetectSpendingAnomaliesOutput",
    "Feature",
    "FinancialInsightsInput",
    "FinancialInsightsOutput",
    "IncomeDataPoint",
    "PredictIncomeInput",
    "PredictIncomeOutput",
    "SpendingAnomaly",
    "TransactionType",
    "WeeklySummaryInput",
    "WeeklySummaryOutput",
    "result_model_for",
    # Attempt records
    "STAGE_ORDER",
    "AttemptOutcome",
    "AttemptRecord",
    "ErrorKind",
    "ProviderStage",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Transactions
    "CategoryShare",
    "Transaction",
    "TransactionAggregation",
]
