"""Shared domain models for the WardSafe pipeline."""
from .turn import (
    Role,
    PipelineState,
    TurnOutcome,
    Turn,
)

__all__ = [
    "Role",
    "PipelineState",
    "TurnOutcome",
    "Turn",
]
