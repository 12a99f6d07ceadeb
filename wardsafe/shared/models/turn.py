"""Turn and pipeline state domain models.

A turn is one user submission plus the single assistant response the
pipeline produces for it. Turns are immutable once appended to a session
transcript.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class Role(Enum):
    """Speaker of a turn."""
    USER = "user"
    ASSISTANT = "assistant"


class PipelineState(Enum):
    """States of the per-turn pipeline state machine.

    RECEIVED -> SANITIZED -> {BLOCKED_INJECTION | EMERGENCY | RATE_LIMITED |
    FORWARDED} -> {FILTERED -> DELIVERED} | ERROR
    """
    RECEIVED = "received"
    SANITIZED = "sanitized"
    BLOCKED_INJECTION = "blocked_injection"
    EMERGENCY = "emergency"
    RATE_LIMITED = "rate_limited"
    FORWARDED = "forwarded"
    FILTERED = "filtered"
    DELIVERED = "delivered"
    ERROR = "error"


class TurnOutcome(Enum):
    """Terminal outcome of a turn. Exactly one per submitted turn."""
    BLOCKED_INJECTION = "blocked_injection"
    EMERGENCY = "emergency"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"
    DELIVERED = "delivered"


@dataclass(frozen=True)
class Turn:
    """A single transcript entry.

    Flagged turns (alerts, emergencies, rate-limit notices, errors, and
    the user turns that produced them) are kept in the transcript but
    never sent back to the model.
    """
    role: Role
    content: str
    is_security_alert: bool = False
    is_emergency: bool = False
    is_rate_limit: bool = False
    is_error: bool = False

    @property
    def is_flagged(self) -> bool:
        return (
            self.is_security_alert
            or self.is_emergency
            or self.is_rate_limit
            or self.is_error
        )

    def to_message(self) -> Dict[str, str]:
        """Chat-completions message shape."""
        return {"role": self.role.value, "content": self.content}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "is_security_alert": self.is_security_alert,
            "is_emergency": self.is_emergency,
            "is_rate_limit": self.is_rate_limit,
            "is_error": self.is_error,
        }
