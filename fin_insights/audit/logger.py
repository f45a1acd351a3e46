"""
Audit Logger

DESIGN DECISION: Every step of a fallback cascade is logged.
This provides:
1. Traceability of which provider served (or failed) each request
2. Debugging capability when every provider is down
3. A record of provisioning activity on the local runtime

The audit logger:
- Never raises: a logging failure must not turn a served request into a failure
- Supports correlation IDs to trace all attempts of one invocation

Importing this module only configures structlog. The host application owns
the root logger; call configure_logging() to set its level and output.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from fin_insights.config import get_settings
from fin_insights.models.attempts import AttemptRecord
from fin_insights.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def _configure_structlog(renderer) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
) -> None:
    """
    Set up stdlib logging and the structlog renderer for an application.

    Values default to AppSettings (LOG_LEVEL, LOG_JSON). Call once at
    startup; console output is handy during development.
    """
    app_settings = get_settings().app
    level = (level or app_settings.log_level).upper()
    json_output = app_settings.log_json if json_output is None else json_output

    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    _configure_structlog(
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )


# Configure structlog for local logging
_configure_structlog(structlog.processors.JSONRenderer())


class AuditLogger:
    """
    Central audit logging service for the cascade.

    Each AuditEvent is written as one structured log line whose level
    follows the event severity.
    """

    def __init__(self, logger_name: str = "fin_insights.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()
        event_name = log_dict.pop("event_type")

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error(event_name, **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning(event_name, **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug(event_name, **log_dict)
            else:
                self._logger.info(event_name, **log_dict)
        except Exception as e:
            # Don't let a broken handler fail the request
            logging.getLogger(__name__).error(
                "audit logging failed for %s: %s", event.event_id, e
            )

    def log_flow_invoked(self, feature: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.flow_invoked(feature, correlation_id))

    def log_no_data(self, feature: str, correlation_id: UUID) -> None:
        """Log a request rejected before any provider was contacted."""
        self.log(AuditEventBuilder.no_data_available(feature, correlation_id))

    def log_cascade_started(self, feature: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.cascade_started(feature, correlation_id))

    def log_attempt(
        self,
        feature: str,
        record: AttemptRecord,
        correlation_id: UUID,
    ) -> None:
        """Log the outcome of one attempt (success, unavailable or failed call)."""
        self.log(AuditEventBuilder.attempt_finished(feature, record, correlation_id))

    def log_provisioning_started(
        self,
        feature: str,
        models: list[str],
        timeout_seconds: float,
        correlation_id: UUID,
    ) -> None:
        self.log(
            AuditEventBuilder.provisioning_started(
                feature, models, timeout_seconds, correlation_id
            )
        )

    def log_provisioning_failed(
        self,
        feature: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(
            AuditEventBuilder.provisioning_failed(feature, error_message, correlation_id)
        )

    def log_cascade_succeeded(
        self,
        feature: str,
        record: AttemptRecord,
        attempt_count: int,
        correlation_id: UUID,
    ) -> None:
        self.log(
            AuditEventBuilder.cascade_succeeded(
                feature, record, attempt_count, correlation_id
            )
        )

    def log_cascade_exhausted(
        self,
        feature: str,
        attempts: list[AttemptRecord],
        correlation_id: UUID,
    ) -> None:
        """Log the full attempt history when every provider failed."""
        self.log(AuditEventBuilder.cascade_exhausted(feature, attempts, correlation_id))

    def log_error(
        self,
        feature: str,
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an unexpected error."""
        self.log(
            AuditEventBuilder.unexpected_error(
                feature, error_type, error_message, correlation_id
            )
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a flow invocation and pass it through
    every attempt of the cascade.
    """
    return uuid4()
