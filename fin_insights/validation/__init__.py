"""Provider response validation."""

from fin_insights.validation.validator import (
    extract_json_object,
    parse_and_validate,
    validate_result,
)

__all__ = ["extract_json_object", "parse_and_validate", "validate_result"]
