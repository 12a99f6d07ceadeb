"""Pipeline orchestrator - the per-turn safety state machine.

Safety checks run BEFORE the model call, and a HIGH injection match or an
emergency match always prevents it.

    RECEIVED -> SANITIZED -> BLOCKED_INJECTION
                          -> EMERGENCY
                          -> RATE_LIMITED
                          -> FORWARDED -> ERROR
                                       -> FILTERED -> DELIVERED

Each submitted turn reaches exactly one terminal state and produces
exactly one assistant turn. Every failure is converted into a
user-visible turn here; nothing propagates and the session stays usable.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from wardsafe.shared.models import PipelineState, Role, Turn, TurnOutcome
from wardsafe.shared.utils import hash_text_for_audit
from wardsafe.services.audit_service import AuditEventType
from wardsafe.services.crisis_engine import EmergencyDetector, EmergencyMatch
from wardsafe.services.llm_service import (
    BackendError,
    BackendUnavailableError,
    ModelClient,
)
from wardsafe.services.safety_service import (
    SECURITY_ALERT_MESSAGE,
    DisclaimerSelector,
    InjectionDetector,
    OutputFilter,
    SafetyConfig,
    Sanitizer,
    ThreatMatch,
)
from .session import SessionState

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """Structured outcome of one pipeline evaluation."""
    outcome: TurnOutcome
    states: List[PipelineState]
    user_turn: Turn
    assistant_turn: Turn
    threats: List[ThreatMatch] = field(default_factory=list)
    emergencies: List[EmergencyMatch] = field(default_factory=list)
    redactions: List[str] = field(default_factory=list)
    disclaimers: List[str] = field(default_factory=list)
    retry_after_seconds: Optional[int] = None
    error: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None

    @property
    def final_state(self) -> PipelineState:
        return self.states[-1]

    @property
    def model_called(self) -> bool:
        return PipelineState.FORWARDED in self.states

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "outcome": self.outcome.value,
            "states": [s.value for s in self.states],
            "user_turn": self.user_turn.to_dict(),
            "assistant_turn": self.assistant_turn.to_dict(),
            "threats": [t.to_dict() for t in self.threats],
            "emergencies": [e.to_dict() for e in self.emergencies],
            "redactions": self.redactions,
            "disclaimers": self.disclaimers,
            "retry_after_seconds": self.retry_after_seconds,
            "error": self.error,
            "usage": self.usage,
        }


@dataclass
class ConnectionStatus:
    """Result of a backend discovery check."""
    status: str  # "connected", "disconnected" or "error"
    models: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.status == "connected"

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "models": self.models, "error": self.error}


class PipelineOrchestrator:
    """Sequences the safety layers for each submitted turn."""

    def __init__(
        self,
        model_client: Optional[ModelClient] = None,
        safety_config: Optional[SafetyConfig] = None,
        injection_detector: Optional[InjectionDetector] = None,
        emergency_detector: Optional[EmergencyDetector] = None,
        output_filter: Optional[OutputFilter] = None,
        disclaimer_selector: Optional[DisclaimerSelector] = None,
    ):
        """Initialize orchestrator with its stages.

        Args:
            model_client: Backend client (the only suspending stage)
            safety_config: Shared read-only limits
            injection_detector: Input rule-table screening
            emergency_detector: Emergency keyword override
            output_filter: Model output redaction
            disclaimer_selector: Disclaimer derivation
        """
        self.model_client = model_client or ModelClient()
        self.safety_config = safety_config or SafetyConfig()
        self.sanitizer = Sanitizer(self.safety_config.max_input_length)
        self.injection_detector = injection_detector or InjectionDetector()
        self.emergency_detector = emergency_detector or EmergencyDetector()
        self.output_filter = output_filter or OutputFilter()
        self.disclaimer_selector = disclaimer_selector or DisclaimerSelector()

        logger.info(
            "PIPELINE_INITIALIZED",
            extra={
                "max_input_length": self.safety_config.max_input_length,
                "max_output_length": self.safety_config.max_output_length,
                "rules_version": self.safety_config.rules_version,
            }
        )

    async def submit(self, session: SessionState, raw_text: str) -> TurnResult:
        """Run one turn through the pipeline.

        Args:
            session: Owning session context
            raw_text: Untrusted user text

        Returns:
            TurnResult with exactly one terminal outcome

        Raises:
            ValueError: If raw_text is blank
            SessionBusyError: If the session already has a turn in flight
        """
        if raw_text is None or not raw_text.strip():
            raise ValueError("Message must not be blank")

        session.begin_turn()
        try:
            return await self._evaluate(session, raw_text)
        finally:
            session.end_turn()

    async def _evaluate(self, session: SessionState, raw_text: str) -> TurnResult:
        states = [PipelineState.RECEIVED]

        text = self.sanitizer.sanitize(raw_text)
        states.append(PipelineState.SANITIZED)

        input_fields = {
            "input_hash": hash_text_for_audit(text),
            "input_length": len(text),
            "raw_length": len(raw_text),
        }

        logger.info(
            "PIPELINE_TURN_RECEIVED",
            extra={"session_id": session.session_id, **input_fields}
        )

        # Layer 1: injection screening
        detection = self.injection_detector.detect(text)
        if detection.blocked:
            session.stats.blocked_threats += 1
            self._audit(session, AuditEventType.INJECTION_BLOCKED, {
                **input_fields,
                "threats": self._threat_fields(detection.threats),
            })
            return self._finish(
                session,
                outcome=TurnOutcome.BLOCKED_INJECTION,
                states=states + [PipelineState.BLOCKED_INJECTION],
                text=text,
                reply=SECURITY_ALERT_MESSAGE,
                flag="is_security_alert",
                threats=detection.threats,
            )

        if detection.threats:
            self._audit(session, AuditEventType.HEALTHCARE_BOUNDARY_FLAGGED, {
                **input_fields,
                "threats": self._threat_fields(detection.threats),
            })

        # Layer 2: emergency override (never rate limited)
        emergencies = self.emergency_detector.detect(text)
        if emergencies:
            session.stats.emergencies_detected += 1
            self._audit(session, AuditEventType.EMERGENCY_DETECTED, {
                **input_fields,
                "categories": [e.category for e in emergencies],
                "keywords": [e.keyword for e in emergencies],
            })
            return self._finish(
                session,
                outcome=TurnOutcome.EMERGENCY,
                states=states + [PipelineState.EMERGENCY],
                text=text,
                reply=self.emergency_detector.render(emergencies),
                flag="is_emergency",
                threats=detection.threats,
                emergencies=emergencies,
            )

        # Layer 3: rate limiting, last gate before the model
        decision = session.rate_limiter.check()
        if not decision.allowed:
            self._audit(session, AuditEventType.RATE_LIMITED, {
                **input_fields,
                "retry_after_seconds": decision.retry_after_seconds,
            })
            return self._finish(
                session,
                outcome=TurnOutcome.RATE_LIMITED,
                states=states + [PipelineState.RATE_LIMITED],
                text=text,
                reply=(
                    f"Rate limit reached. Please wait "
                    f"{decision.retry_after_seconds} seconds."
                ),
                flag="is_rate_limit",
                threats=detection.threats,
                retry_after_seconds=decision.retry_after_seconds,
            )

        # Layer 4: model call
        states.append(PipelineState.FORWARDED)
        context = session.model_context()
        context.append({"role": Role.USER.value, "content": text})
        backend = session.backend

        response = await self.model_client.complete(context, backend)

        if not response.success:
            self._audit(session, AuditEventType.QUERY_FAILED, {
                **input_fields,
                "model": backend.effective_model,
                "error": response.error,
                "error_kind": response.error_kind.value if response.error_kind else None,
                "status": response.status,
            })
            return self._finish(
                session,
                outcome=TurnOutcome.ERROR,
                states=states + [PipelineState.ERROR],
                text=text,
                reply=f"**Error**: {response.error}",
                flag="is_error",
                threats=detection.threats,
                error=response.error,
            )

        # Layer 5: output filtering and disclaimers
        filtered = self.output_filter.filter(response.content)
        states.append(PipelineState.FILTERED)
        if filtered.triggered:
            self._audit(session, AuditEventType.OUTPUT_FILTERED, {
                "pattern_ids": filtered.triggered,
                "output_length": len(response.content),
            })

        output = filtered.text
        if len(output) > self.safety_config.max_output_length:
            output = output[:self.safety_config.max_output_length]

        disclaimers = self.disclaimer_selector.select(text)
        reply = self.disclaimer_selector.compose(output, disclaimers)

        session.stats.total_queries += 1
        self._audit(session, AuditEventType.QUERY_COMPLETE, {
            **input_fields,
            "model": backend.effective_model,
            "output_length": len(reply),
            "redactions": filtered.triggered,
            "usage": response.usage,
        })

        return self._finish(
            session,
            outcome=TurnOutcome.DELIVERED,
            states=states + [PipelineState.DELIVERED],
            text=text,
            reply=reply,
            threats=detection.threats,
            redactions=filtered.triggered,
            disclaimers=disclaimers,
            usage=response.usage,
        )

    async def check_connection(self, session: SessionState) -> ConnectionStatus:
        """List backend models and record the connection state.

        Selects the first available model when the session has none.
        """
        base_url = session.backend.base_url
        try:
            models = await self.model_client.list_models(base_url)
        except BackendError as e:
            status = ConnectionStatus(status="error", error=str(e))
        except BackendUnavailableError as e:
            status = ConnectionStatus(status="disconnected", error=str(e))
        else:
            status = ConnectionStatus(status="connected", models=models)
            if models and not session.backend.model:
                session.update_backend(model=models[0])

        session.connected = status.connected
        self._audit(session, AuditEventType.CONNECTION, {
            "status": status.status,
            "model_count": len(status.models),
            "error": status.error,
        })

        logger.info(
            "BACKEND_CONNECTION_CHECKED",
            extra={
                "session_id": session.session_id,
                "status": status.status,
                "model_count": len(status.models),
            }
        )
        return status

    def _finish(
        self,
        session: SessionState,
        outcome: TurnOutcome,
        states: List[PipelineState],
        text: str,
        reply: str,
        flag: Optional[str] = None,
        **extra: Any,
    ) -> TurnResult:
        """Append the exchange to the transcript and build the result.

        Flagged exchanges are flagged on both turns so neither the user
        text nor the notice is replayed to the model later.
        """
        flags = {flag: True} if flag else {}
        user_turn = Turn(role=Role.USER, content=text, **flags)
        assistant_turn = Turn(role=Role.ASSISTANT, content=reply, **flags)
        session.append(user_turn)
        session.append(assistant_turn)

        logger.info(
            "PIPELINE_TURN_COMPLETED",
            extra={
                "session_id": session.session_id,
                "outcome": outcome.value,
                "states": [s.value for s in states],
            }
        )

        return TurnResult(
            outcome=outcome,
            states=states,
            user_turn=user_turn,
            assistant_turn=assistant_turn,
            **extra,
        )

    @staticmethod
    def _threat_fields(threats: List[ThreatMatch]) -> List[Dict[str, str]]:
        # Matched text is user content, so only ids and labels are audited
        return [
            {
                "pattern_id": t.pattern_id,
                "category": t.category,
                "severity": t.severity.value,
            }
            for t in threats
        ]

    @staticmethod
    def _audit(
        session: SessionState,
        event_type: AuditEventType,
        details: Dict[str, Any],
    ) -> None:
        """Best-effort audit write; failures never reach the user."""
        try:
            session.audit.log(event_type, details)
        except Exception as e:
            logger.error(
                "AUDIT_WRITE_FAILED",
                extra={
                    "session_id": session.session_id,
                    "event_type": event_type.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
