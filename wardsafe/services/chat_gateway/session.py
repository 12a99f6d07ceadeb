"""Session state - the per-session context passed through the pipeline.

A SessionState exclusively owns one rate-limit window, one audit log, the
backend settings, the transcript and counters. It is created when a
session starts and discarded when it ends; nothing in it is shared with
other sessions. Rule tables and SafetyConfig are the only shared state.
"""
import logging
import threading
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from wardsafe.shared.models import Turn
from wardsafe.services.audit_service import AuditEventType, AuditLogger
from wardsafe.services.safety_service.config import BackendConfig, SafetyConfig
from wardsafe.services.safety_service.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class SessionBusyError(RuntimeError):
    """A turn was submitted while another is still being evaluated."""


class SessionNotFoundError(KeyError):
    """No active session with the given id."""


@dataclass
class SessionStats:
    """Per-session counters surfaced to the boundary layer."""
    total_queries: int = 0
    blocked_threats: int = 0
    emergencies_detected: int = 0

    def to_dict(self) -> dict:
        return {
            "total_queries": self.total_queries,
            "blocked_threats": self.blocked_threats,
            "emergencies_detected": self.emergencies_detected,
        }


class SessionState:
    """Mutable state owned by one session.

    Mutations happen only inside the session's single in-flight
    evaluation; begin_turn()/end_turn() enforce that there is at most one.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        safety_config: Optional[SafetyConfig] = None,
        backend: Optional[BackendConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Create a session context.

        Args:
            session_id: Identifier; generated if omitted
            safety_config: Shared read-only limits
            backend: Backend settings copied into this session
            clock: Millisecond clock for the rate limiter (tests)
        """
        self.session_id = session_id or f"sess_{uuid.uuid4().hex[:12]}"
        self.safety_config = safety_config or SafetyConfig()
        self.backend = backend or BackendConfig()
        self.rate_limiter = RateLimiter(self.safety_config.rate_limit, clock=clock)
        self.audit = AuditLogger(session_id=self.session_id)
        self.transcript: List[Turn] = []
        self.stats = SessionStats()
        self.connected = False
        self.closed = False

        self._in_flight = False
        self._guard = threading.Lock()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def begin_turn(self) -> None:
        """Claim the session for one evaluation.

        Raises:
            SessionBusyError: If an evaluation is already running or the
                session has ended
        """
        with self._guard:
            if self.closed:
                raise SessionBusyError(f"Session {self.session_id} has ended")
            if self._in_flight:
                raise SessionBusyError(
                    f"Session {self.session_id} already has a turn in flight"
                )
            self._in_flight = True

    def end_turn(self) -> None:
        with self._guard:
            self._in_flight = False

    def append(self, turn: Turn) -> None:
        self.transcript.append(turn)

    def model_context(self) -> List[Dict[str, str]]:
        """Prior turns passed to the model unchanged, minus flagged turns."""
        return [turn.to_message() for turn in self.transcript if not turn.is_flagged]

    def update_backend(self, **changes) -> BackendConfig:
        """Replace backend settings (validated by BackendConfig).

        Raises:
            InvalidBackendConfigError: If a value is out of range
            TypeError: If an unknown setting is given
        """
        self.backend = replace(self.backend, **changes)
        return self.backend


class SessionRegistry:
    """Maps session ids to isolated SessionState objects.

    Used by the HTTP boundary, where requests for different sessions
    arrive on different threads.
    """

    def __init__(
        self,
        safety_config: Optional[SafetyConfig] = None,
        backend: Optional[BackendConfig] = None,
    ):
        self.safety_config = safety_config or SafetyConfig()
        self.default_backend = backend or BackendConfig()
        self._sessions: Dict[str, SessionState] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def start(self) -> SessionState:
        """Create and register a new session."""
        session = SessionState(
            safety_config=self.safety_config,
            backend=self.default_backend,
        )
        with self._lock:
            self._sessions[session.session_id] = session

        session.audit.log(
            AuditEventType.SESSION_STARTED,
            {"backend": session.backend.to_dict()},
        )
        logger.info("SESSION_STARTED", extra={"session_id": session.session_id})
        return session

    def get(self, session_id: str) -> SessionState:
        """Look up an active session.

        Raises:
            SessionNotFoundError: If the id is unknown or ended
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def end(self, session_id: str) -> SessionState:
        """Unregister a session; its state is discarded with it.

        Raises:
            SessionNotFoundError: If the id is unknown or already ended
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)

        session.closed = True
        session.audit.log(AuditEventType.SESSION_ENDED, session.stats.to_dict())
        logger.info(
            "SESSION_ENDED",
            extra={"session_id": session_id, **session.stats.to_dict()}
        )
        return session
