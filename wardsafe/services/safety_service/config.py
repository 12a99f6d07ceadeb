"""Safety limits and backend settings.

SafetyConfig is loaded once per process and shared read-only by every
session. BackendConfig is copied into each session at start and may be
replaced by the boundary layer.
"""
from dataclasses import dataclass, field

DEFAULT_BASE_URL = "http://127.0.0.1:1234/v1"
DEFAULT_MODEL = "local-model"


class InvalidBackendConfigError(ValueError):
    """Raised when backend settings are out of range."""


@dataclass(frozen=True)
class RateLimitConfig:
    """Sliding-window admission limits for ordinary (non-emergency) turns."""
    max_requests: int = 15
    window_ms: int = 60000
    # Emergency turns are admitted unconditionally when True
    emergency_bypass: bool = True

    def __post_init__(self):
        if self.max_requests <= 0:
            raise ValueError(f"max_requests must be positive, got {self.max_requests}")
        if self.window_ms <= 0:
            raise ValueError(f"window_ms must be positive, got {self.window_ms}")


@dataclass(frozen=True)
class SafetyConfig:
    """Process-wide safety limits."""
    max_input_length: int = 2000
    max_output_length: int = 4000
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)

    # Version tracking for audit trail
    rules_version: str = "2026.10.19"

    def __post_init__(self):
        if self.max_input_length <= 0:
            raise ValueError("max_input_length must be positive")
        if self.max_output_length <= 0:
            raise ValueError("max_output_length must be positive")


@dataclass(frozen=True)
class BackendConfig:
    """Per-session language-model backend settings."""
    base_url: str = DEFAULT_BASE_URL
    model: str = ""
    temperature: float = 0.7
    max_tokens: int = 1000

    def __post_init__(self):
        if not isinstance(self.base_url, str) or not self.base_url:
            raise InvalidBackendConfigError("base_url must be a non-empty string")
        if not isinstance(self.model, str):
            raise InvalidBackendConfigError("model must be a string")
        # bool is an int subclass
        if isinstance(self.temperature, bool) or not isinstance(self.temperature, (int, float)):
            raise InvalidBackendConfigError(
                f"temperature must be a number, got {self.temperature!r}"
            )
        if isinstance(self.max_tokens, bool) or not isinstance(self.max_tokens, int):
            raise InvalidBackendConfigError(
                f"max_tokens must be an integer, got {self.max_tokens!r}"
            )
        if not 0.0 <= self.temperature <= 1.0:
            raise InvalidBackendConfigError(
                f"temperature must be 0.0-1.0, got {self.temperature}"
            )
        if self.max_tokens <= 0:
            raise InvalidBackendConfigError(
                f"max_tokens must be positive, got {self.max_tokens}"
            )

    @property
    def chat_completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"

    @property
    def effective_model(self) -> str:
        return self.model or DEFAULT_MODEL

    def to_dict(self) -> dict:
        return {
            "base_url": self.base_url,
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
