"""
Response Validation

Every provider answer passes through here before it can be returned to a
caller. Validation happens in two steps:

STEP 1 - EXTRACTION:
- Locate the JSON object inside the model's text (models like to wrap it
  in markdown fences or prose)
- Parse it

STEP 2 - SCHEMA VALIDATION:
- Validate against the feature's result model
- Every field is required, text fields must be non-blank

IMPORTANT: Validation NEVER fills in missing fields. An incomplete answer
is a failed attempt, and the cascade moves on to the next provider.

The only field computed here rather than taken from the provider is
is_new_category for transaction categorization: it is derived from the
request's existing categories so the answer cannot contradict the request.
"""

import json
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from fin_insights.models.features import (
    CategorizeTransactionInput,
    Feature,
    result_model_for,
)
from fin_insights.providers.base import ResponseValidationError


def extract_json_object(text: Optional[str], provider: Optional[str] = None) -> dict:
    """
    Pull the outermost JSON object out of model output.

    Raises:
        ResponseValidationError: If there is no parseable object.
    """
    if not text or not text.strip():
        raise ResponseValidationError("Empty response", provider=provider)

    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ResponseValidationError("No JSON object in response", provider=provider)

    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise ResponseValidationError(
            f"Response is not valid JSON: {e.msg}", provider=provider
        ) from e

    if not isinstance(data, dict):
        raise ResponseValidationError("Response JSON is not an object", provider=provider)
    return data


def _summarize_errors(error: ValidationError) -> str:
    parts = []
    for item in error.errors()[:5]:
        location = ".".join(str(loc) for loc in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def validate_result(
    feature: Feature,
    data: Any,
    request: Optional[BaseModel] = None,
    provider: Optional[str] = None,
) -> BaseModel:
    """
    Validate provider data against the feature's result model.

    Args:
        feature: The feature being served
        data: Parsed provider output (dict)
        request: The original request; needed for categorization
        provider: Provider name, for error messages

    Raises:
        ResponseValidationError: If the data does not satisfy the model.
    """
    if not isinstance(data, dict):
        raise ResponseValidationError("Response is not an object", provider=provider)

    if feature == Feature.TRANSACTION_CATEGORIZATION and isinstance(
        request, CategorizeTransactionInput
    ):
        data = dict(data)
        data.pop("is_new_category", None)
        category = data.get("category")
        if isinstance(category, str) and category.strip():
            data["isNewCategory"] = not request.is_known_category(category)

    model_cls = result_model_for(feature)
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise ResponseValidationError(
            f"Invalid {feature.value} result: {_summarize_errors(e)}",
            provider=provider,
        ) from e


def parse_and_validate(
    feature: Feature,
    text: Optional[str],
    request: Optional[BaseModel] = None,
    provider: Optional[str] = None,
) -> BaseModel:
    """Extract the JSON object from text and validate it."""
    data = extract_json_object(text, provider=provider)
    return validate_result(feature, data, request=request, provider=provider)
