"""
Feature Request and Result Models

Each AI feature has exactly two schemas:

1. A REQUEST - the caller's financial data, immutable for one invocation.
2. A RESULT - the structured output every provider must produce.

RESULT INVARIANT: every declared field is required and text fields may not
be blank. A provider answer that cannot satisfy the result model is a failed
attempt, never a partially populated success. Placeholders such as "-" belong
to the display layer, not here.

Field names on the wire are camelCase (the shape providers are prompted
with). Python code uses the snake_case attribute names; both are accepted
when validating.
"""

import json
from datetime import date
from enum import Enum
from typing import Annotated, NamedTuple, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
)
from pydantic.alias_generators import to_camel


NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _RequestModel(BaseModel):
    """Base for feature requests: immutable, camelCase on the wire."""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def has_meaningful_data(self) -> bool:
        raise NotImplementedError

    def to_prompt_payload(self) -> dict:
        """Serialize with wire names for prompt rendering."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class _ResultModel(BaseModel):
    """Base for structured results."""
    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )


# =============================================================================
# FINANCIAL INSIGHTS
# =============================================================================

class FinancialInsightsInput(_RequestModel):
    """Totals for a period plus category and recurring-expense breakdowns."""

    income: float = Field(default=0.0, description="Total income for the period")
    expenses: float = Field(default=0.0, description="Total expenses for the period")
    savings: float = Field(default=0.0, description="Total savings for the period")
    spending_by_category: dict[str, float] = Field(
        default_factory=dict,
        description="Spending by category, e.g. {'Food': 100}"
    )
    recurring_expenses: dict[str, float] = Field(
        default_factory=dict,
        description="Recurring expenses, e.g. {'Rent': 1000}"
    )

    def has_meaningful_data(self) -> bool:
        return (
            self.income > 0
            or self.expenses > 0
            or len(self.spending_by_category) > 0
        )


class FinancialInsightsOutput(_ResultModel):
    summary: NonBlankStr = Field(description="Summary of the financial situation")
    savings_opportunities: list[NonBlankStr] = Field(
        min_length=1,
        description="Potential saving opportunities"
    )
    spending_habits: NonBlankStr = Field(description="Analysis of spending habits")


# =============================================================================
# INCOME PREDICTION
# =============================================================================

class IncomeDataPoint(BaseModel):
    """One month (or period) of historical income."""
    model_config = ConfigDict(frozen=True)

    date: str = Field(..., min_length=1, description="Period start, ISO format")
    income: float = Field(..., description="Income for the period")
    currency: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        if isinstance(v, date):
            return v.isoformat()
        return v


class PredictIncomeInput(_RequestModel):
    """
    Historical income series used to predict next month.

    historical_income also accepts the JSON-encoded string form
    ('[{"date": ..., "income": ...}]') produced by older callers.
    """

    historical_income: tuple[IncomeDataPoint, ...] = Field(
        default=(),
        validation_alias=AliasChoices(
            "historicalIncomeData", "historicalIncome", "historical_income"
        ),
    )
    seasonality: Optional[str] = Field(
        default=None,
        description="Free text about seasonal variation in income"
    )

    @field_validator("historical_income", mode="before")
    @classmethod
    def parse_json_series(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return ()
            try:
                v = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"historical income is not valid JSON: {e}") from e
        return v

    def has_meaningful_data(self) -> bool:
        return len(self.historical_income) > 0

    def to_prompt_payload(self) -> dict:
        payload = {
            "historicalIncomeData": [
                point.model_dump(exclude_none=True) for point in self.historical_income
            ],
        }
        if self.seasonality:
            payload["seasonality"] = self.seasonality
        return payload


class PredictIncomeOutput(_ResultModel):
    predicted_income: float = Field(
        ge=0,
        description="Predicted income for next month, in the data's currency"
    )
    confidence_interval: NonBlankStr = Field(
        description="e.g. '95% confidence interval is +/- 1000'"
    )
    factors: NonBlankStr = Field(
        description="Factors behind the prediction (seasonality, trends, anomalies)"
    )


# =============================================================================
# SPENDING ANOMALIES
# =============================================================================

class DetectSpendingAnomaliesInput(_RequestModel):
    """Recent per-category spending against historical monthly averages."""

    spending_by_category: dict[str, float] = Field(default_factory=dict)
    average_spending_by_category: dict[str, float] = Field(default_factory=dict)

    def has_meaningful_data(self) -> bool:
        return len(self.spending_by_category) > 0


class SpendingAnomaly(_ResultModel):
    category: NonBlankStr
    amount: float
    deviation: NonBlankStr = Field(description="e.g. '25% higher than usual'")
    reason: NonBlankStr


class DetectSpendingAnomaliesOutput(_ResultModel):
    # An empty list is a valid answer: nothing unusual was found.
    anomalies: list[SpendingAnomaly]


# =============================================================================
# WEEKLY SUMMARY (DIGEST)
# =============================================================================

class WeeklySummaryInput(_RequestModel):
    income: float = 0.0
    expenses: float = 0.0
    savings: float = 0.0
    spending_by_category: dict[str, float] = Field(default_factory=dict)
    previous_week_income: float = 0.0
    previous_week_expenses: float = 0.0
    previous_week_savings: float = 0.0

    def has_meaningful_data(self) -> bool:
        figures = (
            self.income,
            self.expenses,
            self.savings,
            self.previous_week_income,
            self.previous_week_expenses,
            self.previous_week_savings,
        )
        return any(value != 0 for value in figures) or len(self.spending_by_category) > 0


class WeeklySummaryOutput(_ResultModel):
    summary: NonBlankStr
    trends: NonBlankStr
    opportunities: NonBlankStr


# =============================================================================
# TRANSACTION CATEGORIZATION
# =============================================================================

class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class CategorizeTransactionInput(_RequestModel):
    description: str = Field(..., description="Transaction description or vendor name")
    amount: float = Field(..., ge=0)
    transaction_type: TransactionType = Field(..., alias="type")
    vendor: Optional[str] = None
    existing_categories: tuple[str, ...] = ()
    user_history: Optional[str] = Field(
        default=None,
        description="Similar past transactions (JSON)"
    )

    def has_meaningful_data(self) -> bool:
        return bool(self.description and self.description.strip())

    def is_known_category(self, category: str) -> bool:
        wanted = category.strip().lower()
        return any(existing.strip().lower() == wanted for existing in self.existing_categories)


class CategorizeTransactionOutput(_ResultModel):
    category: NonBlankStr
    confidence: float = Field(ge=0.0, le=1.0)
    reason: NonBlankStr
    alternative_categories: list[NonBlankStr]
    is_new_category: bool


# =============================================================================
# FEATURE REGISTRY
# =============================================================================

class Feature(str, Enum):
    """AI features served by the fallback cascade."""
    FINANCIAL_INSIGHTS = "financial_insights"
    INCOME_PREDICTION = "income_prediction"
    SPENDING_ANOMALIES = "spending_anomalies"
    WEEKLY_SUMMARY = "weekly_summary"
    TRANSACTION_CATEGORIZATION = "transaction_categorization"


class FeatureSpec(NamedTuple):
    request_model: type[_RequestModel]
    result_model: type[_ResultModel]


FEATURE_SPECS: dict[Feature, FeatureSpec] = {
    Feature.FINANCIAL_INSIGHTS: FeatureSpec(FinancialInsightsInput, FinancialInsightsOutput),
    Feature.INCOME_PREDICTION: FeatureSpec(PredictIncomeInput, PredictIncomeOutput),
    Feature.SPENDING_ANOMALIES: FeatureSpec(
        DetectSpendingAnomaliesInput, DetectSpendingAnomaliesOutput
    ),
    Feature.WEEKLY_SUMMARY: FeatureSpec(WeeklySummaryInput, WeeklySummaryOutput),
    Feature.TRANSACTION_CATEGORIZATION: FeatureSpec(
        CategorizeTransactionInput, CategorizeTransactionOutput
    ),
}


def result_model_for(feature: Feature) -> type[_ResultModel]:
    return FEATURE_SPECS[feature].result_model
