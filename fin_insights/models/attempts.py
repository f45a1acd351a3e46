"""
Attempt Records for the fallback cascade

One AttemptRecord is created for every (stage, model variant) the
orchestrator tries during a single invocation. Records are transient: they
feed diagnostic logging and the terminal error, then are discarded.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ProviderStage(str, Enum):
    """Cascade stages, in the order they are attempted."""
    PRIMARY = "primary"                  # primary model variants
    PRIMARY_DEFAULT = "primary_default"  # default primary model, independent attempt
    SECONDARY = "secondary"              # secondary hosted SDK
    LOCAL = "local"                      # local inference runtime
    TERTIARY = "tertiary"                # tertiary hosted API


STAGE_ORDER: tuple[ProviderStage, ...] = (
    ProviderStage.PRIMARY,
    ProviderStage.PRIMARY_DEFAULT,
    ProviderStage.SECONDARY,
    ProviderStage.LOCAL,
    ProviderStage.TERTIARY,
)


class ErrorKind(str, Enum):
    """
    Stable error kinds.

    Only NO_DATA_AVAILABLE and ALL_PROVIDERS_FAILED cross the
    orchestrator boundary.
    """
    NO_DATA_AVAILABLE = "NO_DATA_AVAILABLE"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    PROVIDER_CALL_FAILED = "PROVIDER_CALL_FAILED"
    ALL_PROVIDERS_FAILED = "ALL_PROVIDERS_FAILED"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    UNAVAILABLE = "unavailable"   # prober said no; no call was made
    CALL_FAILED = "call_failed"   # a call was made and failed


class AttemptRecord(BaseModel):
    """Outcome of one attempt within a cascade."""

    stage: ProviderStage
    provider: str
    model: Optional[str] = None
    outcome: AttemptOutcome
    error_kind: Optional[ErrorKind] = None
    error_detail: Optional[str] = None
    elapsed_seconds: float = Field(default=0.0, ge=0.0)
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def succeeded(self) -> bool:
        return self.outcome == AttemptOutcome.SUCCESS

    @property
    def made_call(self) -> bool:
        """True if a provider call was actually sent."""
        return self.outcome != AttemptOutcome.UNAVAILABLE

    def describe(self) -> str:
        label = f"{self.stage.value}:{self.provider}"
        if self.model:
            label += f"/{self.model}"
        if self.succeeded:
            return f"{label} ok"
        return f"{label} {self.outcome.value} ({self.error_detail or 'no detail'})"

    def to_log_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "provider": self.provider,
            "model": self.model,
            "outcome": self.outcome.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_detail": self.error_detail,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }
