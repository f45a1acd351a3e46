"""Prompt builders for each provider family."""

from fin_insights.prompts.templates import (
    build_genai_prompt,
    build_json_prompt,
    build_labelled_prompt,
)

__all__ = ["build_genai_prompt", "build_json_prompt", "build_labelled_prompt"]
