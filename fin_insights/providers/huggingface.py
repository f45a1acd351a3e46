"""
Tertiary Provider: Hugging Face Inference API

Small instruction-tuned models are asked for "Label: value" lines rather
than JSON. The parsers below pull each label out with a regular expression
and build the result model's wire shape.

A missing label is a failed call. The parsers never substitute
boilerplate text for something the model did not say.
"""

import re
from typing import Callable, Optional

import aiohttp
import structlog
from pydantic import BaseModel

from fin_insights.config import HuggingFaceSettings, get_settings
from fin_insights.models.features import Feature
from fin_insights.prompts import build_labelled_prompt
from fin_insights.providers.base import (
    ProviderAdapter,
    ProviderCallFailedError,
    ProviderRateLimitError,
    ResponseValidationError,
)
from fin_insights.validation import validate_result


logger = structlog.get_logger(__name__)

REPETITION_PENALTY = 1.1

_NUMBER = r"([0-9][0-9,]*(?:\.[0-9]+)?)"
_LINE_BULLET = re.compile(r"^\s*[-*•]\s+")
_ITEM_NUMBER = re.compile(r"(?:^|(?<=\s))(\d+)[.)]\s+")
_NO_ANOMALIES = re.compile(r"\s*no (?:spending )?anomalies(?: were)? detected\.?\s*$", re.IGNORECASE)


def _section(text: str, label: str, next_labels: tuple[str, ...] = ()) -> str:
    """Text after 'Label:' up to the next known label (or end of text)."""
    if next_labels:
        stop = "|".join(re.escape(f"{name}:") for name in next_labels)
        pattern = rf"{re.escape(label)}:\s*(.+?)(?=(?:{stop})|$)"
    else:
        pattern = rf"{re.escape(label)}:\s*(.+)$"
    match = re.search(pattern, text, re.DOTALL | re.IGNORECASE)
    value = match.group(1).strip() if match else ""
    if not value:
        raise ResponseValidationError(
            f"Response has no '{label}:' section", provider="huggingface"
        )
    return value


def _line(text: str, label: str) -> str:
    match = re.search(rf"{re.escape(label)}:\s*([^\n|]+)", text, re.IGNORECASE)
    value = match.group(1).strip() if match else ""
    if not value:
        raise ResponseValidationError(
            f"Response has no '{label}:' line", provider="huggingface"
        )
    return value


def _to_number(raw: str) -> float:
    return float(raw.replace(",", ""))


def split_list_items(text: str) -> list[str]:
    """
    Split '1. a 2. b' / bulleted / line-separated text into items.

    A number only starts an item when it continues the count from 1, so
    "Reduce dining out to 200. Cancel the gym" stays one item.
    """
    pieces = []
    expected = 1
    for line in text.splitlines():
        line = _LINE_BULLET.sub("", line)
        position = 0
        for match in _ITEM_NUMBER.finditer(line):
            if int(match.group(1)) != expected:
                continue
            pieces.append(line[position:match.start()])
            position = match.end()
            expected += 1
        pieces.append(line[position:])

    items = [piece.strip(" ;,.\t") for piece in pieces]
    return [item for item in items if item]


def parse_insights(text: str) -> dict:
    summary = _section(text, "Summary", ("Opportunities", "Habits"))
    opportunities = _section(text, "Opportunities", ("Habits",))
    habits = _section(text, "Habits")
    return {
        "summary": summary,
        "savingsOpportunities": split_list_items(opportunities),
        "spendingHabits": habits,
    }


def parse_prediction(text: str) -> dict:
    match = re.search(rf"Predicted:\s*[^0-9\n]*{_NUMBER}", text, re.IGNORECASE)
    if not match:
        raise ResponseValidationError(
            "Response has no 'Predicted:' amount", provider="huggingface"
        )
    return {
        "predictedIncome": _to_number(match.group(1)),
        "confidenceInterval": _line(text, "Confidence"),
        "factors": _section(text, "Factors"),
    }


def parse_anomalies(text: str) -> dict:
    lines = [
        line for line in text.splitlines()
        if "category:" in line.lower() and "amount:" in line.lower()
    ]
    if not lines:
        if _NO_ANOMALIES.match(text):
            return {"anomalies": []}
        raise ResponseValidationError(
            "Response has neither anomaly lines nor 'No anomalies detected'",
            provider="huggingface",
        )

    anomalies = []
    for line in lines:
        amount = re.search(rf"Amount:\s*[^0-9\n|]*{_NUMBER}", line, re.IGNORECASE)
        reason = re.search(r"Reason:\s*(.+)$", line, re.IGNORECASE)
        anomalies.append({
            "category": _line(line, "Category"),
            "amount": _to_number(amount.group(1)) if amount else None,
            "deviation": _line(line, "Deviation"),
            "reason": reason.group(1).strip() if reason else None,
        })
    return {"anomalies": anomalies}


def parse_weekly_summary(text: str) -> dict:
    return {
        "summary": _section(text, "Summary", ("Trends", "Opportunities")),
        "trends": _section(text, "Trends", ("Opportunities",)),
        "opportunities": _section(text, "Opportunities"),
    }


def parse_categorization(text: str) -> dict:
    confidence_match = re.search(r"Confidence:\s*([0-9]*\.?[0-9]+)", text, re.IGNORECASE)
    if not confidence_match:
        raise ResponseValidationError(
            "Response has no 'Confidence:' value", provider="huggingface"
        )
    confidence = float(confidence_match.group(1))
    if confidence > 1:
        confidence = confidence / 100

    alternatives_text = _line(text, "Alternatives").strip("[]")
    alternatives = [
        item.strip().strip("\"'")
        for item in alternatives_text.split(",")
        if item.strip().strip("\"'") and item.strip().lower() not in ("none", "n/a")
    ]
    return {
        "category": _line(text, "Category"),
        "confidence": confidence,
        "reason": _line(text, "Reason"),
        "alternativeCategories": alternatives,
    }


PARSERS: dict[Feature, Callable[[str], dict]] = {
    Feature.FINANCIAL_INSIGHTS: parse_insights,
    Feature.INCOME_PREDICTION: parse_prediction,
    Feature.SPENDING_ANOMALIES: parse_anomalies,
    Feature.WEEKLY_SUMMARY: parse_weekly_summary,
    Feature.TRANSACTION_CATEGORIZATION: parse_categorization,
}


class HuggingFaceAdapter(ProviderAdapter):
    """Tertiary hosted API adapter (text generation)."""

    name = "huggingface"

    def __init__(self, settings: Optional[HuggingFaceSettings] = None):
        self._settings = settings or get_settings().huggingface

    async def _post_inference(self, model_name: str, prompt: str) -> object:
        url = f"{self._settings.base_url.rstrip('/')}/models/{model_name}"
        headers = {"Authorization": f"Bearer {self._settings.api_token}"}
        payload = {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": self._settings.max_new_tokens,
                "temperature": self._settings.temperature,
                "repetition_penalty": REPETITION_PENALTY,
                "return_full_text": False,
            },
        }
        async with aiohttp.ClientSession() as session:
            async with session.post(url, json=payload, headers=headers) as response:
                if response.status == 429:
                    raise ProviderRateLimitError(
                        "Hugging Face rate limit exceeded", provider=self.name
                    )
                if response.status == 503:
                    raise ProviderCallFailedError(
                        f"Model {model_name} is loading", provider=self.name
                    )
                if response.status != 200:
                    error_text = await response.text()
                    raise ProviderCallFailedError(
                        f"Hugging Face API returned status {response.status}: {error_text[:200]}",
                        provider=self.name,
                    )
                return await response.json()

    @staticmethod
    def _generated_text(data: object) -> str:
        if isinstance(data, list) and data and isinstance(data[0], dict):
            data = data[0]
        if isinstance(data, dict) and isinstance(data.get("generated_text"), str):
            return data["generated_text"]
        raise ResponseValidationError(
            "Response has no generated_text", provider="huggingface"
        )

    async def generate(
        self,
        feature: Feature,
        request: BaseModel,
        model: Optional[str] = None,
    ) -> BaseModel:
        model_name = model or self._settings.model
        prompt = build_labelled_prompt(feature, request)

        try:
            data = await self._post_inference(model_name, prompt)
        except aiohttp.ClientError as e:
            raise ProviderCallFailedError(
                f"Failed to connect to Hugging Face API: {e}", provider=self.name
            ) from e

        text = self._generated_text(data)
        logger.debug("huggingface_response_received", model=model_name, chars=len(text))
        parsed = PARSERS[feature](text)
        return validate_result(feature, parsed, request=request, provider=self.name)
