"""Request preparation from transactions."""

from fin_insights.data.aggregator import (
    aggregate_transactions,
    analyze_seasonality,
    build_anomaly_request,
    build_income_prediction_request,
    build_insights_request,
    build_weekly_summary_request,
    monthly_income,
    week_start,
)

__all__ = [
    "aggregate_transactions",
    "analyze_seasonality",
    "build_anomaly_request",
    "build_income_prediction_request",
    "build_insights_request",
    "build_weekly_summary_request",
    "monthly_income",
    "week_start",
]
