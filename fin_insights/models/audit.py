"""
Audit Models for the AI cascade

Every step of a fallback cascade produces one audit event: the cascade
starting, each attempt's outcome, provisioning of the local runtime, and
the final result. Events that belong to the same invocation share a
correlation ID, so a single user request can be reconstructed from the log.

Audit events are append-only and never modified after creation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from fin_insights.models.attempts import AttemptRecord


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Flow entry
    FLOW_INVOKED = "flow_invoked"
    NO_DATA_AVAILABLE = "no_data_available"

    # Cascade
    CASCADE_STARTED = "cascade_started"
    ATTEMPT_SUCCEEDED = "attempt_succeeded"
    ATTEMPT_FAILED = "attempt_failed"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVISIONING_STARTED = "provisioning_started"
    PROVISIONING_FAILED = "provisioning_failed"
    CASCADE_SUCCEEDED = "cascade_succeeded"
    CASCADE_EXHAUSTED = "cascade_exhausted"

    # System events
    UNEXPECTED_ERROR = "unexpected_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Which feature and stage this is about
    feature: Optional[str] = Field(
        default=None,
        description="AI feature name (e.g. 'financial_insights')"
    )
    stage: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one invocation"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "feature": self.feature,
            "stage": self.stage,
            "provider": self.provider,
            "model": self.model,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.cascade_started("financial_insights", correlation_id)
        event = AuditEventBuilder.attempt_finished("financial_insights", record, correlation_id)
    """

    @staticmethod
    def flow_invoked(
        feature: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FLOW_INVOKED,
            feature=feature,
            correlation_id=correlation_id,
            description=f"Flow invoked: {feature}",
        )

    @staticmethod
    def no_data_available(
        feature: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NO_DATA_AVAILABLE,
            feature=feature,
            correlation_id=correlation_id,
            description=f"No meaningful data for {feature}; no provider contacted",
            error_code="NO_DATA_AVAILABLE",
        )

    @staticmethod
    def cascade_started(
        feature: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CASCADE_STARTED,
            feature=feature,
            correlation_id=correlation_id,
            description=f"Fallback cascade started for {feature}",
        )

    @staticmethod
    def attempt_finished(
        feature: str,
        record: AttemptRecord,
        correlation_id: UUID,
    ) -> AuditEvent:
        """Build the event matching an attempt record's outcome."""
        if record.succeeded:
            event_type = AuditEventType.ATTEMPT_SUCCEEDED
            severity = AuditSeverity.INFO
        elif record.made_call:
            event_type = AuditEventType.ATTEMPT_FAILED
            severity = AuditSeverity.WARNING
        else:
            event_type = AuditEventType.PROVIDER_UNAVAILABLE
            severity = AuditSeverity.WARNING

        return AuditEvent(
            event_type=event_type,
            severity=severity,
            feature=feature,
            stage=record.stage.value,
            provider=record.provider,
            model=record.model,
            correlation_id=correlation_id,
            description=record.describe()[:500],
            details={"elapsed_seconds": round(record.elapsed_seconds, 3)},
            error_code=record.error_kind.value if record.error_kind else None,
            error_message=record.error_detail,
        )

    @staticmethod
    def provisioning_started(
        feature: str,
        models: list[str],
        timeout_seconds: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROVISIONING_STARTED,
            feature=feature,
            stage="local",
            correlation_id=correlation_id,
            description="Local runtime not ready, provisioning a model",
            details={
                "candidate_models": models,
                "timeout_seconds": timeout_seconds,
            },
        )

    @staticmethod
    def provisioning_failed(
        feature: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROVISIONING_FAILED,
            severity=AuditSeverity.WARNING,
            feature=feature,
            stage="local",
            correlation_id=correlation_id,
            description="Local model provisioning failed",
            error_message=error_message,
        )

    @staticmethod
    def cascade_succeeded(
        feature: str,
        record: AttemptRecord,
        attempt_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CASCADE_SUCCEEDED,
            feature=feature,
            stage=record.stage.value,
            provider=record.provider,
            model=record.model,
            correlation_id=correlation_id,
            description=f"{feature} served by {record.provider} after {attempt_count} attempts",
            details={"attempt_count": attempt_count},
        )

    @staticmethod
    def cascade_exhausted(
        feature: str,
        attempts: list[AttemptRecord],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CASCADE_EXHAUSTED,
            severity=AuditSeverity.ERROR,
            feature=feature,
            correlation_id=correlation_id,
            description=f"All providers failed for {feature}",
            details={"attempts": [attempt.to_log_dict() for attempt in attempts]},
            error_code="ALL_PROVIDERS_FAILED",
        )

    @staticmethod
    def unexpected_error(
        feature: str,
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNEXPECTED_ERROR,
            severity=AuditSeverity.ERROR,
            feature=feature,
            correlation_id=correlation_id,
            description=f"Unexpected error: {error_type}",
            error_message=error_message,
        )
