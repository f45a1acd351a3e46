"""
Secondary Provider: Gemini via the google-genai SDK

The secondary SDK is prompted with its own native response shapes
(e.g. a 0..1 "confidence" instead of a confidence-interval sentence).
Normalizers map each native shape onto the feature's result model.

IMPORTANT: normalizers only RENAME and DERIVE. They never invent a value
for a field the provider left out; the validator rejects the answer and
the cascade moves on.
"""

from typing import Any, Callable, Optional

import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel

from fin_insights.config import SecondaryAISettings, get_settings
from fin_insights.models.features import DetectSpendingAnomaliesInput, Feature
from fin_insights.prompts import build_genai_prompt
from fin_insights.providers.base import (
    ProviderAdapter,
    ProviderCallFailedError,
    ProviderRateLimitError,
)
from fin_insights.validation import extract_json_object, validate_result


logger = structlog.get_logger(__name__)


def _join_items(value: Any) -> Any:
    if isinstance(value, list):
        return " ".join(str(item).strip() for item in value if str(item).strip())
    return value


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_prediction(data: dict, request: BaseModel) -> dict:
    """{predictedIncome, confidence, trend, insights} -> PredictIncomeOutput shape."""
    result: dict[str, Any] = {}
    if "predictedIncome" in data:
        result["predictedIncome"] = data["predictedIncome"]

    confidence = _as_float(data.get("confidence"))
    if confidence is not None:
        # Accept both 0..1 and 0..100
        percent = confidence * 100 if confidence <= 1 else confidence
        result["confidenceInterval"] = f"{round(percent)}% confidence interval"

    insights = data.get("insights")
    if isinstance(insights, str) and insights.strip():
        trend = data.get("trend")
        if isinstance(trend, str) and trend.strip():
            insights = f"{insights.strip()} Trend: {trend.strip()}."
        result["factors"] = insights
    return result


def describe_deviation(amount: Optional[float], average: Optional[float]) -> Optional[str]:
    """'40% higher than usual' style text, or None without a usable average."""
    if amount is None or average is None or average <= 0:
        return None
    percent = round((amount - average) / average * 100)
    direction = "higher" if percent >= 0 else "lower"
    return f"{abs(percent)}% {direction} than usual"


def normalize_anomalies(data: dict, request: BaseModel) -> dict:
    """{anomalies: [{category, amount, severity, description}], summary} -> result shape."""
    averages = {}
    if isinstance(request, DetectSpendingAnomaliesInput):
        averages = request.average_spending_by_category

    items = data.get("anomalies")
    if not isinstance(items, list):
        return {}

    anomalies = []
    for item in items:
        if not isinstance(item, dict):
            anomalies.append(item)
            continue
        anomaly = {key: item[key] for key in ("category", "amount") if key in item}

        deviation = item.get("deviation") or describe_deviation(
            _as_float(item.get("amount")),
            averages.get(item.get("category")) if isinstance(item.get("category"), str) else None,
        )
        if not deviation and isinstance(item.get("severity"), str) and item["severity"].strip():
            deviation = f"{item['severity'].strip().capitalize()} severity"
        if deviation:
            anomaly["deviation"] = deviation

        reason = item.get("reason") or item.get("description")
        if reason:
            anomaly["reason"] = reason
        anomalies.append(anomaly)
    return {"anomalies": anomalies}


def normalize_weekly_summary(data: dict, request: BaseModel) -> dict:
    """{summary, keyTrends, recommendations} -> WeeklySummaryOutput shape."""
    result = {}
    if "summary" in data:
        result["summary"] = data["summary"]
    trends = data.get("keyTrends", data.get("trends"))
    if trends is not None:
        result["trends"] = _join_items(trends)
    opportunities = data.get("recommendations", data.get("opportunities"))
    if opportunities is not None:
        result["opportunities"] = _join_items(opportunities)
    return result


def normalize_categorization(data: dict, request: BaseModel) -> dict:
    """{category, confidence, reason, alternatives} -> CategorizeTransactionOutput shape."""
    result = {key: data[key] for key in ("category", "confidence", "reason") if key in data}
    alternatives = data.get("alternatives", data.get("alternativeCategories"))
    if alternatives is not None:
        result["alternativeCategories"] = alternatives
    return result


def _identity(data: dict, request: BaseModel) -> dict:
    return data


NORMALIZERS: dict[Feature, Callable[[dict, BaseModel], dict]] = {
    Feature.FINANCIAL_INSIGHTS: _identity,
    Feature.INCOME_PREDICTION: normalize_prediction,
    Feature.SPENDING_ANOMALIES: normalize_anomalies,
    Feature.WEEKLY_SUMMARY: normalize_weekly_summary,
    Feature.TRANSACTION_CATEGORIZATION: normalize_categorization,
}


class GoogleGenAIAdapter(ProviderAdapter):
    """Secondary hosted SDK adapter."""

    name = "google-genai"

    def __init__(self, settings: Optional[SecondaryAISettings] = None):
        self._settings = settings or get_settings().secondary

    async def generate(
        self,
        feature: Feature,
        request: BaseModel,
        model: Optional[str] = None,
    ) -> BaseModel:
        model_name = model or self._settings.model
        prompt = build_genai_prompt(feature, request)
        client = genai.Client(api_key=self._settings.api_key)
        config = types.GenerateContentConfig(
            temperature=self._settings.temperature,
            max_output_tokens=self._settings.max_output_tokens,
            response_mime_type="application/json",
        )

        try:
            response = await client.aio.models.generate_content(
                model=model_name,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as e:
            if getattr(e, "code", None) == 429:
                raise ProviderRateLimitError(
                    f"{model_name} rate limited: {e}", provider=self.name
                ) from e
            raise ProviderCallFailedError(
                f"{model_name} call failed: {e}", provider=self.name
            ) from e

        native = extract_json_object(response.text, provider=self.name)
        normalized = NORMALIZERS[feature](native, request)
        logger.debug("genai_response_normalized", model=model_name, feature=feature.value)
        return validate_result(feature, normalized, request=request, provider=self.name)
