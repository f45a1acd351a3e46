"""
Configuration Management for the AI insights layer

Uses pydantic-settings for type-safe configuration from environment variables.

All provider configuration is centralized here. Every provider key is
OPTIONAL: a missing key does not stop the application from starting, it only
makes that provider unavailable to the fallback cascade.
"""

from functools import cached_property, lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class PrimaryAISettings(BaseSettings):
    """Primary hosted model (Gemini via google-generativeai) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_AI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Google AI API key"
    )
    model_variants: str = Field(
        default="gemini-2.0-flash-exp,gemini-2.0-flash,gemini-1.5-flash,gemini-pro",
        description="Comma-separated model variants, tried in order"
    )
    default_model: str = Field(
        default="gemini-2.0-flash-exp",
        description="Model used for the default primary attempt"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )
    max_output_tokens: int = Field(
        default=1024,
        ge=64,
        le=8192,
        description="Maximum tokens in response"
    )

    @property
    def model_variant_list(self) -> list[str]:
        """Get model variants as an ordered list."""
        return _split_csv(self.model_variants)


class SecondaryAISettings(BaseSettings):
    """Secondary hosted SDK (Gemini via google-genai) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_GENAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True
    )

    # Shares the primary key unless a dedicated one is set
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_GENAI_API_KEY", "GOOGLE_AI_API_KEY"),
        description="Google GenAI API key"
    )
    model: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model used by the secondary SDK"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
    )
    max_output_tokens: int = Field(
        default=1024,
        ge=64,
        le=8192,
    )


class OllamaSettings(BaseSettings):
    """Local inference runtime (Ollama) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OLLAMA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL"
    )
    preferred_models: str = Field(
        default="gemma2:2b,gemma:2b,llama3.2:1b,phi3:mini,mistral:7b",
        description="Comma-separated models in order of preference"
    )
    probe_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for the reachability probe"
    )
    provision_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Upper bound for pulling a model on demand"
    )
    temperature: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
    )
    num_predict: int = Field(
        default=400,
        ge=16,
        description="Maximum tokens generated per call"
    )

    @property
    def preferred_model_list(self) -> list[str]:
        """Get preferred models as an ordered list."""
        return _split_csv(self.preferred_models)


class HuggingFaceSettings(BaseSettings):
    """Tertiary hosted API (Hugging Face Inference) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="HUGGINGFACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_token: Optional[str] = Field(
        default=None,
        description="Hugging Face API token"
    )
    model: str = Field(
        default="google/gemma-2-2b-it",
        description="Text-generation model id"
    )
    base_url: str = Field(
        default="https://api-inference.huggingface.co",
        description="Inference API base URL"
    )
    max_new_tokens: int = Field(
        default=512,
        ge=16,
        le=4096,
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
    )
    probe_on_check: bool = Field(
        default=False,
        description="Send a one-token request when checking availability"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Cascade behaviour
    call_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Timeout applied to every single provider call"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (console renderer otherwise)"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily, once per Settings instance, so a broken
    # section only affects the provider that needs it.

    @cached_property
    def primary(self) -> PrimaryAISettings:
        return PrimaryAISettings()

    @cached_property
    def secondary(self) -> SecondaryAISettings:
        return SecondaryAISettings()

    @cached_property
    def ollama(self) -> OllamaSettings:
        return OllamaSettings()

    @cached_property
    def huggingface(self) -> HuggingFaceSettings:
        return HuggingFaceSettings()

    @cached_property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings sections load, and report which hosted
    providers have a usable credential.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    from fin_insights.providers.availability import is_usable_credential

    results = {}
    settings = get_settings()

    sections = {
        "primary": lambda: settings.primary,
        "secondary": lambda: settings.secondary,
        "ollama": lambda: settings.ollama,
        "huggingface": lambda: settings.huggingface,
        "app": lambda: settings.app,
    }

    loaded = {}
    for name, load in sections.items():
        try:
            loaded[name] = load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    if "primary" in loaded:
        results["primary_key_configured"] = is_usable_credential(loaded["primary"].api_key)
    if "secondary" in loaded:
        results["secondary_key_configured"] = is_usable_credential(loaded["secondary"].api_key)
    if "huggingface" in loaded:
        results["huggingface_token_configured"] = is_usable_credential(
            loaded["huggingface"].api_token
        )

    return results
