"""Client for OpenAI-compatible chat-completions backends (LM Studio).

One non-streaming request per admitted turn, bounded by a fixed timeout.
complete() never raises for transport problems: failures come back as a
classified ModelResponse so the pipeline can turn them into an error turn.
No automatic retries.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import aiohttp

from wardsafe.services.safety_service.config import BackendConfig
from .prompts import build_messages

logger = logging.getLogger(__name__)

COMPLETION_TIMEOUT_SECONDS = 60
DISCOVERY_TIMEOUT_SECONDS = 5
EMPTY_COMPLETION_TEXT = "No response generated"


class ModelClientError(Exception):
    """Base class for backend failures."""


class BackendError(ModelClientError):
    """Backend answered with a non-success HTTP status or a malformed body."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class BackendUnavailableError(ModelClientError):
    """Backend could not be reached (connection refused, timeout)."""


class ErrorKind(Enum):
    """Classification of a failed completion call."""
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    BACKEND_STATUS = "backend_status"
    MALFORMED = "malformed"


@dataclass
class ModelResponse:
    """Result of one completion call."""
    success: bool
    content: str = ""
    usage: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    status: Optional[int] = None
    latency_ms: Optional[float] = None


class ModelClient:
    """aiohttp client for the chat-completions and models endpoints."""

    def __init__(
        self,
        timeout_seconds: float = COMPLETION_TIMEOUT_SECONDS,
        discovery_timeout_seconds: float = DISCOVERY_TIMEOUT_SECONDS,
    ):
        """Initialize client.

        Args:
            timeout_seconds: Total timeout for one completion request
            discovery_timeout_seconds: Total timeout for listing models
        """
        self.timeout_seconds = timeout_seconds
        self.discovery_timeout_seconds = discovery_timeout_seconds

    async def complete(
        self,
        messages: List[Dict[str, str]],
        backend: BackendConfig,
    ) -> ModelResponse:
        """Issue one completion request.

        Args:
            messages: Prior turns plus the current user turn (no system prompt)
            backend: Endpoint and sampling parameters

        Returns:
            ModelResponse; success=False carries error and error_kind
        """
        payload = {
            "model": backend.effective_model,
            "messages": build_messages(messages),
            "temperature": backend.temperature,
            "max_tokens": backend.max_tokens,
            "stream": False,
        }

        start_time = time.perf_counter()

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    backend.chat_completions_url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    if response.status < 200 or response.status >= 300:
                        raise BackendError(
                            f"Backend API error: {response.status}",
                            status=response.status,
                        )
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        raise BackendError(f"Malformed backend response: {e}") from e

            content = self._extract_content(data)

        except asyncio.TimeoutError:
            return self._failure(
                "Request timed out.", ErrorKind.TIMEOUT, backend, start_time
            )
        except BackendError as e:
            kind = ErrorKind.BACKEND_STATUS if e.status else ErrorKind.MALFORMED
            return self._failure(str(e), kind, backend, start_time, status=e.status)
        except aiohttp.ClientError as e:
            return self._failure(
                f"Cannot reach backend: {e}", ErrorKind.TRANSPORT, backend, start_time
            )

        latency_ms = (time.perf_counter() - start_time) * 1000
        usage = data.get("usage") if isinstance(data.get("usage"), dict) else None

        logger.info(
            "MODEL_COMPLETION_SUCCEEDED",
            extra={
                "model": backend.effective_model,
                "latency_ms": latency_ms,
                "total_tokens": (usage or {}).get("total_tokens"),
            }
        )

        return ModelResponse(
            success=True,
            content=content,
            usage=usage,
            latency_ms=latency_ms,
        )

    async def list_models(self, base_url: str) -> List[str]:
        """List model identifiers offered by the backend.

        Args:
            base_url: Backend base URL (e.g. http://127.0.0.1:1234/v1)

        Returns:
            Model ids in backend order

        Raises:
            BackendError: Non-success status or malformed body
            BackendUnavailableError: Timeout or connection failure
        """
        url = f"{base_url.rstrip('/')}/models"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    timeout=aiohttp.ClientTimeout(total=self.discovery_timeout_seconds),
                ) as response:
                    if response.status < 200 or response.status >= 300:
                        raise BackendError(
                            f"Server error: {response.status}",
                            status=response.status,
                        )
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        raise BackendError(f"Malformed models response: {e}") from e
        except asyncio.TimeoutError as e:
            raise BackendUnavailableError("Connection timed out.") from e
        except aiohttp.ClientError as e:
            raise BackendUnavailableError(f"Cannot connect to backend: {e}") from e

        models = data.get("data") if isinstance(data, dict) else None
        if not isinstance(models, list):
            return []
        return [m["id"] for m in models if isinstance(m, dict) and m.get("id")]

    @staticmethod
    def _extract_content(data: Any) -> str:
        if not isinstance(data, dict) or not isinstance(data.get("choices"), list):
            raise BackendError("Malformed backend response: missing choices")
        choices = data["choices"]
        if not choices:
            return EMPTY_COMPLETION_TEXT
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if content is not None and not isinstance(content, str):
            raise BackendError(
                f"Malformed backend response: content is {type(content).__name__}"
            )
        return content or EMPTY_COMPLETION_TEXT

    @staticmethod
    def _failure(
        error: str,
        kind: ErrorKind,
        backend: BackendConfig,
        start_time: float,
        status: Optional[int] = None,
    ) -> ModelResponse:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.error(
            "MODEL_COMPLETION_FAILED",
            extra={
                "model": backend.effective_model,
                "error": error,
                "error_kind": kind.value,
                "status": status,
                "latency_ms": latency_ms,
            }
        )
        return ModelResponse(
            success=False,
            error=error,
            error_kind=kind,
            status=status,
            latency_ms=latency_ms,
        )
