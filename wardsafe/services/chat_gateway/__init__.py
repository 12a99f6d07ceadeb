"""Chat Gateway: per-session pipeline orchestration.

Components:
- session.py: SessionState and SessionRegistry (create/teardown lifecycle)
- pipeline.py: PipelineOrchestrator, the per-turn state machine
- handler.py: Flask HTTP boundary (imported separately)
"""

from .pipeline import ConnectionStatus, PipelineOrchestrator, TurnResult
from .session import (
    SessionBusyError,
    SessionNotFoundError,
    SessionRegistry,
    SessionState,
    SessionStats,
)

__all__ = [
    "ConnectionStatus",
    "PipelineOrchestrator",
    "TurnResult",
    "SessionBusyError",
    "SessionNotFoundError",
    "SessionRegistry",
    "SessionState",
    "SessionStats",
]
