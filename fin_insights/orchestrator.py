"""
Fallback Orchestrator

Runs one feature request through the provider cascade:

    1. PRIMARY          every configured Gemini model variant, in order
    2. PRIMARY_DEFAULT  the default Gemini model, one independent attempt
    3. SECONDARY        google-genai SDK (native shape, normalized)
    4. LOCAL            Ollama (provisioned on demand, bounded)
    5. TERTIARY         Hugging Face Inference API (labelled text, parsed)

DESIGN DECISION: The cascade is strictly SEQUENTIAL.
- The first validated result wins and nothing after it is contacted
- There is no retry of the same endpoint and no delay between stages
- Every adapter call is bounded by AppSettings.call_timeout_seconds
- Every stage produces at least one AttemptRecord, in order

Provider errors NEVER escape this module. Callers see a result, or an
AllProvidersFailedError carrying the full attempt history.
Cancellation is not a failure: asyncio.CancelledError propagates as-is.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel

from fin_insights.audit import AuditLogger, create_correlation_id
from fin_insights.config import Settings, get_settings
from fin_insights.models.attempts import (
    AttemptOutcome,
    AttemptRecord,
    ErrorKind,
    ProviderStage,
)
from fin_insights.models.features import Feature
from fin_insights.providers.availability import AvailabilityProber
from fin_insights.providers.base import (
    ProviderAdapter,
    ProviderError,
    ProviderUnavailableError,
)
from fin_insights.providers.gemini import GeminiAdapter
from fin_insights.providers.genai_sdk import GoogleGenAIAdapter
from fin_insights.providers.huggingface import HuggingFaceAdapter
from fin_insights.providers.ollama import OllamaAdapter


logger = structlog.get_logger(__name__)


# =============================================================================
# CALLER-FACING ERRORS
# =============================================================================

class FlowError(Exception):
    """Base for the errors a flow caller can see."""

    kind: ErrorKind = ErrorKind.ALL_PROVIDERS_FAILED


class NoDataAvailableError(FlowError):
    """The request carries no meaningful data; no provider was contacted."""

    kind = ErrorKind.NO_DATA_AVAILABLE

    def __init__(self, feature: Feature, message: Optional[str] = None):
        super().__init__(
            message or f"Not enough financial data for {feature.value}"
        )
        self.feature = feature


class AllProvidersFailedError(FlowError):
    """Every stage of the cascade failed or was unavailable."""

    kind = ErrorKind.ALL_PROVIDERS_FAILED

    def __init__(self, feature: Feature, attempts: list[AttemptRecord]):
        self.feature = feature
        self.attempts = tuple(attempts)
        details = "; ".join(attempt.describe() for attempt in self.attempts)
        super().__init__(
            f"All AI providers failed for {feature.value}"
            + (f": {details}" if details else "")
        )


# =============================================================================
# OUTCOME
# =============================================================================

@dataclass
class CascadeOutcome:
    """A successful cascade: the result plus where it came from."""

    result: BaseModel
    stage: ProviderStage
    provider: str
    model: Optional[str]
    attempts: list[AttemptRecord] = field(default_factory=list)


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class FallbackOrchestrator:
    """
    Runs the provider cascade for any feature.

    Every collaborator can be injected, which is how tests replace the
    adapters and the prober with mocks.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        prober: Optional[AvailabilityProber] = None,
        primary: Optional[ProviderAdapter] = None,
        secondary: Optional[ProviderAdapter] = None,
        local: Optional[ProviderAdapter] = None,
        tertiary: Optional[ProviderAdapter] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        settings = settings or get_settings()
        self._primary_settings = settings.primary
        self._secondary_settings = settings.secondary
        self._ollama_settings = settings.ollama
        self._call_timeout = settings.app.call_timeout_seconds

        self._prober = prober or AvailabilityProber(settings)
        self._primary = primary or GeminiAdapter(self._primary_settings)
        self._secondary = secondary or GoogleGenAIAdapter(self._secondary_settings)
        self._local = local or OllamaAdapter(self._ollama_settings)
        self._tertiary = tertiary or HuggingFaceAdapter(settings.huggingface)
        self._audit = audit_logger or AuditLogger()

    async def execute(
        self,
        feature: Feature,
        request: BaseModel,
        correlation_id: Optional[UUID] = None,
    ) -> CascadeOutcome:
        """
        Run the cascade and return the first validated result.

        Raises:
            AllProvidersFailedError: Every stage failed or was unavailable.
        """
        correlation_id = correlation_id or create_correlation_id()
        attempts: list[AttemptRecord] = []
        self._audit.log_cascade_started(feature.value, correlation_id)

        # Stages 1 and 2: primary variants, then the default model
        if self._prober.primary_configured():
            for variant in self._primary_settings.model_variant_list:
                outcome = await self._attempt(
                    ProviderStage.PRIMARY, self._primary, feature, request,
                    variant, attempts, correlation_id,
                )
                if outcome:
                    return outcome

            outcome = await self._attempt(
                ProviderStage.PRIMARY_DEFAULT, self._primary, feature, request,
                self._primary_settings.default_model, attempts, correlation_id,
            )
            if outcome:
                return outcome
        else:
            self._record_unavailable(
                ProviderStage.PRIMARY, self._primary.name, None,
                "Primary API key missing or placeholder",
                feature, attempts, correlation_id,
            )

        # Stage 3: secondary SDK
        if self._prober.secondary_ready():
            outcome = await self._attempt(
                ProviderStage.SECONDARY, self._secondary, feature, request,
                self._secondary_settings.model, attempts, correlation_id,
            )
            if outcome:
                return outcome
        else:
            self._record_unavailable(
                ProviderStage.SECONDARY, self._secondary.name,
                self._secondary_settings.model,
                "Secondary SDK key missing or client could not be created",
                feature, attempts, correlation_id,
            )

        # Stage 4: local runtime, provisioned on demand
        local_model = await self._ready_local_model(feature, attempts, correlation_id)
        if local_model:
            outcome = await self._attempt(
                ProviderStage.LOCAL, self._local, feature, request,
                local_model, attempts, correlation_id,
            )
            if outcome:
                return outcome

        # Stage 5: tertiary hosted API
        if await self._probe(self._prober.tertiary_available()):
            outcome = await self._attempt(
                ProviderStage.TERTIARY, self._tertiary, feature, request,
                None, attempts, correlation_id,
            )
            if outcome:
                return outcome
        else:
            self._record_unavailable(
                ProviderStage.TERTIARY, self._tertiary.name, None,
                "Tertiary API token missing, placeholder or probe failed",
                feature, attempts, correlation_id,
            )

        self._audit.log_cascade_exhausted(feature.value, attempts, correlation_id)
        raise AllProvidersFailedError(feature, attempts)

    async def _probe(self, check) -> bool:
        try:
            return bool(await check)
        except ProviderError as e:
            logger.warning("availability_probe_failed", error=str(e))
            return False
        except Exception:
            logger.exception("availability_probe_unexpected_error")
            return False

    async def _ready_local_model(
        self,
        feature: Feature,
        attempts: list[AttemptRecord],
        correlation_id: UUID,
    ) -> Optional[str]:
        """Model to use on the local runtime, provisioning one if needed."""
        try:
            model = await self._prober.local_reachable()
        except ProviderError as e:
            logger.warning("local_probe_failed", error=str(e))
            model = None
        except Exception:
            logger.exception(
                "local_probe_unexpected_error", correlation_id=str(correlation_id)
            )
            model = None
        if model:
            return model

        timeout = self._ollama_settings.provision_timeout_seconds
        self._audit.log_provisioning_started(
            feature.value,
            self._ollama_settings.preferred_model_list,
            timeout,
            correlation_id,
        )
        try:
            return await self._prober.provision_local()
        except ProviderUnavailableError as e:
            detail = str(e)
        except Exception as e:
            logger.exception(
                "local_provisioning_unexpected_error", correlation_id=str(correlation_id)
            )
            detail = f"{type(e).__name__}: {e}"

        self._audit.log_provisioning_failed(feature.value, detail, correlation_id)
        self._record_unavailable(
            ProviderStage.LOCAL, self._local.name, None,
            f"Local runtime not ready: {detail}",
            feature, attempts, correlation_id,
        )
        return None

    async def _attempt(
        self,
        stage: ProviderStage,
        adapter: ProviderAdapter,
        feature: Feature,
        request: BaseModel,
        model: Optional[str],
        attempts: list[AttemptRecord],
        correlation_id: UUID,
    ) -> Optional[CascadeOutcome]:
        """
        One bounded adapter call. Returns the outcome on success, or None
        after recording the failure.
        """
        started = time.monotonic()
        try:
            result = await asyncio.wait_for(
                adapter.generate(feature, request, model=model),
                timeout=self._call_timeout,
            )
        except asyncio.TimeoutError:
            self._record_failure(
                stage, adapter.name, model, AttemptOutcome.CALL_FAILED,
                ErrorKind.PROVIDER_CALL_FAILED,
                f"Timed out after {self._call_timeout:g}s",
                started, feature, attempts, correlation_id,
            )
            return None
        except ProviderError as e:
            outcome = (
                AttemptOutcome.UNAVAILABLE
                if isinstance(e, ProviderUnavailableError)
                else AttemptOutcome.CALL_FAILED
            )
            self._record_failure(
                stage, adapter.name, model, outcome, e.kind,
                f"{type(e).__name__}: {e}",
                started, feature, attempts, correlation_id,
            )
            return None
        except Exception as e:
            logger.exception(
                "adapter_unexpected_error",
                provider=adapter.name,
                model=model,
                correlation_id=str(correlation_id),
            )
            self._record_failure(
                stage, adapter.name, model, AttemptOutcome.CALL_FAILED,
                ErrorKind.PROVIDER_CALL_FAILED,
                f"{type(e).__name__}: {e}",
                started, feature, attempts, correlation_id,
            )
            return None

        record = AttemptRecord(
            stage=stage,
            provider=adapter.name,
            model=model,
            outcome=AttemptOutcome.SUCCESS,
            elapsed_seconds=time.monotonic() - started,
        )
        attempts.append(record)
        self._audit.log_attempt(feature.value, record, correlation_id)
        self._audit.log_cascade_succeeded(
            feature.value, record, len(attempts), correlation_id
        )
        return CascadeOutcome(
            result=result,
            stage=stage,
            provider=adapter.name,
            model=model,
            attempts=list(attempts),
        )

    def _record_failure(
        self,
        stage: ProviderStage,
        provider: str,
        model: Optional[str],
        outcome: AttemptOutcome,
        error_kind: ErrorKind,
        detail: str,
        started: float,
        feature: Feature,
        attempts: list[AttemptRecord],
        correlation_id: UUID,
    ) -> None:
        record = AttemptRecord(
            stage=stage,
            provider=provider,
            model=model,
            outcome=outcome,
            error_kind=error_kind,
            error_detail=detail,
            elapsed_seconds=time.monotonic() - started,
        )
        attempts.append(record)
        self._audit.log_attempt(feature.value, record, correlation_id)

    def _record_unavailable(
        self,
        stage: ProviderStage,
        provider: str,
        model: Optional[str],
        detail: str,
        feature: Feature,
        attempts: list[AttemptRecord],
        correlation_id: UUID,
    ) -> None:
        record = AttemptRecord(
            stage=stage,
            provider=provider,
            model=model,
            outcome=AttemptOutcome.UNAVAILABLE,
            error_kind=ErrorKind.PROVIDER_UNAVAILABLE,
            error_detail=detail,
        )
        attempts.append(record)
        self._audit.log_attempt(feature.value, record, correlation_id)
