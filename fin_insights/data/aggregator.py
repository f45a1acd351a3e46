"""
Data Preparation

Turns caller-supplied transactions into feature requests.

DESIGN DECISION: This module is PURE. It never loads or stores anything;
the application passes in the transactions it already has.

All figures are computed here, deterministically. The language models only
ever describe these numbers; they never compute them.
"""

import calendar
import datetime
from collections import defaultdict
from typing import Iterable, Optional

from fin_insights.models.features import (
    DetectSpendingAnomaliesInput,
    FinancialInsightsInput,
    IncomeDataPoint,
    PredictIncomeInput,
    WeeklySummaryInput,
)
from fin_insights.models.transactions import (
    CategoryShare,
    Transaction,
    TransactionAggregation,
)


TOP_CATEGORY_COUNT = 5
MIN_SEASONALITY_POINTS = 6
INSUFFICIENT_SEASONALITY = "Insufficient data for seasonality analysis"


def _in_range(
    transaction: Transaction,
    start: Optional[datetime.date],
    end: Optional[datetime.date],
) -> bool:
    if start and transaction.date < start:
        return False
    if end and transaction.date > end:
        return False
    return True


def _subtract_months(day: datetime.date, months: int) -> datetime.date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return datetime.date(year, month, min(day.day, last_day))


def aggregate_transactions(
    transactions: Iterable[Transaction],
    start: Optional[datetime.date] = None,
    end: Optional[datetime.date] = None,
) -> TransactionAggregation:
    """
    Totals and breakdowns for the transactions within [start, end].

    - savings = income - expenses (may be negative)
    - expenses without a category count as "Uncategorized"
    - recurring expenses are keyed by vendor, falling back to description
    - average amount is over all transactions, income and expense
    """
    total_income = 0.0
    total_expenses = 0.0
    count = 0
    spending: dict[str, float] = defaultdict(float)
    recurring: dict[str, float] = defaultdict(float)

    for transaction in transactions:
        if not _in_range(transaction, start, end):
            continue
        count += 1
        if transaction.is_income:
            total_income += transaction.amount
        elif transaction.is_expense:
            total_expenses += transaction.amount
            spending[transaction.category_or_default] += transaction.amount
            if transaction.is_recurring:
                recurring[transaction.recurring_key] += transaction.amount

    top = sorted(spending.items(), key=lambda item: item[1], reverse=True)
    top_categories = [
        CategoryShare(
            category=category,
            amount=amount,
            percentage=(amount / total_expenses * 100) if total_expenses > 0 else 0.0,
        )
        for category, amount in top[:TOP_CATEGORY_COUNT]
    ]

    return TransactionAggregation(
        total_income=total_income,
        total_expenses=total_expenses,
        savings=total_income - total_expenses,
        spending_by_category=dict(spending),
        recurring_expenses=dict(recurring),
        transaction_count=count,
        average_transaction_amount=(
            (total_income + total_expenses) / count if count else 0.0
        ),
        top_categories=top_categories,
    )


def build_insights_request(
    transactions: Iterable[Transaction],
    start: Optional[datetime.date] = None,
    end: Optional[datetime.date] = None,
) -> FinancialInsightsInput:
    aggregation = aggregate_transactions(transactions, start, end)
    return FinancialInsightsInput(
        income=aggregation.total_income,
        expenses=aggregation.total_expenses,
        savings=aggregation.savings,
        spending_by_category=aggregation.spending_by_category,
        recurring_expenses=aggregation.recurring_expenses,
    )


def monthly_income(
    transactions: Iterable[Transaction],
    months: int = 12,
    today: Optional[datetime.date] = None,
) -> list[IncomeDataPoint]:
    """Income summed per calendar month ('YYYY-MM-01'), oldest first."""
    today = today or datetime.date.today()
    start = _subtract_months(today, months)

    buckets: dict[str, float] = defaultdict(float)
    for transaction in transactions:
        if not transaction.is_income or not _in_range(transaction, start, today):
            continue
        key = transaction.date.replace(day=1).isoformat()
        buckets[key] += transaction.amount

    return [
        IncomeDataPoint(date=key, income=total)
        for key, total in sorted(buckets.items())
    ]


def analyze_seasonality(history: list[IncomeDataPoint]) -> str:
    """
    Name the calendar months with the highest and lowest average income.

    Needs at least six data points. Only months that have data are compared.
    """
    if len(history) < MIN_SEASONALITY_POINTS:
        return INSUFFICIENT_SEASONALITY

    totals: dict[int, float] = defaultdict(float)
    counts: dict[int, int] = defaultdict(int)
    for point in history:
        month = datetime.date.fromisoformat(point.date[:10]).month
        totals[month] += point.income
        counts[month] += 1

    averages = {month: totals[month] / counts[month] for month in totals}
    highest = max(averages, key=averages.get)
    lowest = min(averages, key=averages.get)
    return (
        f"Income tends to be highest in {calendar.month_name[highest]} "
        f"and lowest in {calendar.month_name[lowest]}"
    )


def build_income_prediction_request(
    transactions: Iterable[Transaction],
    months: int = 12,
    today: Optional[datetime.date] = None,
) -> PredictIncomeInput:
    history = monthly_income(transactions, months=months, today=today)
    return PredictIncomeInput(
        historical_income=history,
        seasonality=analyze_seasonality(history),
    )


def build_anomaly_request(
    transactions: Iterable[Transaction],
    days: int = 30,
    baseline_days: int = 90,
    today: Optional[datetime.date] = None,
) -> DetectSpendingAnomaliesInput:
    """
    Recent spending per category vs. the monthly average over a baseline.

    The baseline total is divided by max(1, baseline_days // 30) to get a
    per-month figure.
    """
    today = today or datetime.date.today()
    transactions = list(transactions)

    recent = aggregate_transactions(
        transactions, start=today - datetime.timedelta(days=days), end=today
    )
    baseline = aggregate_transactions(
        transactions, start=today - datetime.timedelta(days=baseline_days), end=today
    )
    periods = max(1, baseline_days // 30)

    return DetectSpendingAnomaliesInput(
        spending_by_category=recent.spending_by_category,
        average_spending_by_category={
            category: total / periods
            for category, total in baseline.spending_by_category.items()
        },
    )


def week_start(day: datetime.date) -> datetime.date:
    """The Sunday on or before `day`."""
    # date.weekday(): Monday=0 ... Sunday=6
    return day - datetime.timedelta(days=(day.weekday() + 1) % 7)


def build_weekly_summary_request(
    transactions: Iterable[Transaction],
    today: Optional[datetime.date] = None,
) -> WeeklySummaryInput:
    """This week (Sunday to today) against the full previous week."""
    today = today or datetime.date.today()
    transactions = list(transactions)

    this_start = week_start(today)
    last_start = this_start - datetime.timedelta(days=7)
    last_end = this_start - datetime.timedelta(days=1)

    this_week = aggregate_transactions(transactions, start=this_start, end=today)
    last_week = aggregate_transactions(transactions, start=last_start, end=last_end)

    return WeeklySummaryInput(
        income=this_week.total_income,
        expenses=this_week.total_expenses,
        savings=this_week.savings,
        spending_by_category=this_week.spending_by_category,
        previous_week_income=last_week.total_income,
        previous_week_expenses=last_week.total_expenses,
        previous_week_savings=last_week.savings,
    )
