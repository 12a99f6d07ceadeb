"""Safety Service: deterministic input and output guardrails.

Every message passes through here BEFORE reaching the model, and every
model response passes through the output filter before reaching the user.

Components:
- rules.py: Declarative rule tables and the generic matcher
- sanitizer.py: Markup/control-character stripping and length limit
- scanner.py: InjectionDetector over the injection and boundary tables
- rate_limiter.py: Per-session sliding-window admission control
- output_filter.py: Redaction of unsafe model phrasing
- disclaimers.py: Disclaimer selection and composition
- config.py: SafetyConfig, RateLimitConfig, BackendConfig

Usage:
    from wardsafe.services.safety_service import InjectionDetector, sanitize_input
    result = InjectionDetector().detect(sanitize_input(text))
"""

from .config import (
    BackendConfig,
    InvalidBackendConfigError,
    RateLimitConfig,
    SafetyConfig,
)
from .disclaimers import DisclaimerSelector, select_disclaimers
from .output_filter import REDACTION_MARKER, FilterResult, OutputFilter
from .rate_limiter import RateLimitDecision, RateLimiter
from .rules import (
    HEALTHCARE_BOUNDARY_RULES,
    INJECTION_RULES,
    OUTPUT_DANGER_RULES,
    RuleTable,
    Severity,
    ThreatMatch,
    ThreatPattern,
)
from .sanitizer import Sanitizer, sanitize_input
from .scanner import SECURITY_ALERT_MESSAGE, DetectionResult, InjectionDetector

__all__ = [
    "BackendConfig",
    "InvalidBackendConfigError",
    "RateLimitConfig",
    "SafetyConfig",
    "DisclaimerSelector",
    "select_disclaimers",
    "REDACTION_MARKER",
    "FilterResult",
    "OutputFilter",
    "RateLimitDecision",
    "RateLimiter",
    "HEALTHCARE_BOUNDARY_RULES",
    "INJECTION_RULES",
    "OUTPUT_DANGER_RULES",
    "RuleTable",
    "Severity",
    "ThreatMatch",
    "ThreatPattern",
    "Sanitizer",
    "sanitize_input",
    "SECURITY_ALERT_MESSAGE",
    "DetectionResult",
    "InjectionDetector",
]
