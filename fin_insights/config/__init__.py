"""Configuration package."""

from fin_insights.config.settings import (
    AppSettings,
    HuggingFaceSettings,
    OllamaSettings,
    PrimaryAISettings,
    SecondaryAISettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "HuggingFaceSettings",
    "OllamaSettings",
    "PrimaryAISettings",
    "SecondaryAISettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
