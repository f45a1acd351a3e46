"""
Transaction Models

Transactions are supplied by the caller (the application's own storage
layer loads them). This package only reads them to prepare feature
requests; it never persists or mutates them.
"""

import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fin_insights.models.features import TransactionType


DEFAULT_CATEGORY = "Uncategorized"


class Transaction(BaseModel):
    """A single income or expense entry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    transaction_type: TransactionType = Field(..., alias="type")
    amount: float = Field(..., ge=0, description="Absolute amount")
    date: datetime.date
    category: Optional[str] = None
    vendor: Optional[str] = None
    description: Optional[str] = None
    is_recurring: bool = Field(default=False, alias="isRecurring")

    @field_validator("category", "vendor", "description", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_income(self) -> bool:
        return self.transaction_type == TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.transaction_type == TransactionType.EXPENSE

    @property
    def category_or_default(self) -> str:
        return self.category or DEFAULT_CATEGORY

    @property
    def recurring_key(self) -> str:
        """Recurring expenses are grouped by vendor, falling back to description."""
        return self.vendor or self.description or DEFAULT_CATEGORY


class CategoryShare(BaseModel):
    category: str
    amount: float
    percentage: float


class TransactionAggregation(BaseModel):
    """Totals and breakdowns for a set of transactions."""

    total_income: float = 0.0
    total_expenses: float = 0.0
    savings: float = 0.0
    spending_by_category: dict[str, float] = Field(default_factory=dict)
    recurring_expenses: dict[str, float] = Field(default_factory=dict)
    transaction_count: int = 0
    average_transaction_amount: float = 0.0
    top_categories: list[CategoryShare] = Field(default_factory=list)
