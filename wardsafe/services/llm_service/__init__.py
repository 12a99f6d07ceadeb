"""LLM Service: client for the language-model backend.

Talks to any OpenAI-compatible chat-completions server (LM Studio by
default). Only admitted turns ever reach it; the safety pipeline runs
first.
"""

from .model_client import (
    BackendError,
    BackendUnavailableError,
    ErrorKind,
    ModelClient,
    ModelClientError,
    ModelResponse,
)
from .prompts import HEALTHCARE_SYSTEM_PROMPT

__all__ = [
    "BackendError",
    "BackendUnavailableError",
    "ErrorKind",
    "ModelClient",
    "ModelClientError",
    "ModelResponse",
    "HEALTHCARE_SYSTEM_PROMPT",
]
