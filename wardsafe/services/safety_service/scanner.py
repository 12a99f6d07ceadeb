"""Injection detector - rule-table screening of sanitized input.

Runs BEFORE emergency detection and before the model sees anything.

Architecture:
- Table 1: Prompt-injection patterns (HIGH - turn is blocked)
- Table 2: Healthcare-boundary patterns (MEDIUM - audited only)
- Combined: the full threat list is returned for the audit trail
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from wardsafe.shared.utils import hash_text_for_audit
from .rules import (
    HEALTHCARE_BOUNDARY_RULES,
    INJECTION_RULES,
    RuleTable,
    Severity,
    ThreatMatch,
)

logger = logging.getLogger(__name__)

SECURITY_ALERT_MESSAGE = (
    "**Security Alert**: Your message contained patterns that could "
    "compromise safety. Please rephrase your question."
)


@dataclass(frozen=True)
class DetectionResult:
    """Result of injection screening on one message.

    Immutable - detection results cannot be modified after creation.
    """
    threats: List[ThreatMatch] = field(default_factory=list)
    scan_latency_ms: float = 0.0

    @property
    def blocked(self) -> bool:
        """True if any HIGH-severity rule matched."""
        return any(t.severity == Severity.HIGH for t in self.threats)

    @property
    def high_threats(self) -> List[ThreatMatch]:
        return [t for t in self.threats if t.severity == Severity.HIGH]

    @property
    def advisory_threats(self) -> List[ThreatMatch]:
        return [t for t in self.threats if t.severity != Severity.HIGH]

    @property
    def categories(self) -> List[str]:
        seen = []
        for threat in self.threats:
            if threat.category not in seen:
                seen.append(threat.category)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "blocked": self.blocked,
            "threats": [t.to_dict() for t in self.threats],
            "scan_latency_ms": round(self.scan_latency_ms, 2),
        }


class InjectionDetector:
    """Deterministic injection and boundary detector.

    Both tables are always evaluated in full, injection table first.
    A single HIGH match blocks the turn; MEDIUM matches never do.
    """

    def __init__(
        self,
        injection_rules: Optional[RuleTable] = None,
        boundary_rules: Optional[RuleTable] = None,
    ):
        """Initialize detector with rule tables.

        Args:
            injection_rules: HIGH-severity table (defaults to INJECTION_RULES)
            boundary_rules: MEDIUM-severity table (defaults to HEALTHCARE_BOUNDARY_RULES)
        """
        self._tables = (
            INJECTION_RULES if injection_rules is None else injection_rules,
            HEALTHCARE_BOUNDARY_RULES if boundary_rules is None else boundary_rules,
        )

        logger.info(
            "INJECTION_DETECTOR_INITIALIZED",
            extra={
                "tables": [table.name for table in self._tables],
                "pattern_count": sum(len(table) for table in self._tables),
            }
        )

    def detect(self, text: str) -> DetectionResult:
        """Screen sanitized text against every rule table.

        Args:
            text: Sanitized message text

        Returns:
            DetectionResult with every matched threat

        Logs:
            - INJECTION_DETECTED: If any HIGH rule matched (warning)
            - HEALTHCARE_BOUNDARY_DETECTED: If only MEDIUM rules matched
        """
        start_time = time.perf_counter()

        threats: List[ThreatMatch] = []
        for table in self._tables:
            threats.extend(table.match(text))

        result = DetectionResult(
            threats=threats,
            scan_latency_ms=(time.perf_counter() - start_time) * 1000,
        )

        if result.blocked:
            logger.warning(
                "INJECTION_DETECTED",
                extra={
                    "text_hash": hash_text_for_audit(text),
                    "pattern_ids": [t.pattern_id for t in result.high_threats],
                    "categories": result.categories,
                    "latency_ms": result.scan_latency_ms,
                }
            )
        elif threats:
            logger.info(
                "HEALTHCARE_BOUNDARY_DETECTED",
                extra={
                    "text_hash": hash_text_for_audit(text),
                    "pattern_ids": [t.pattern_id for t in threats],
                    "latency_ms": result.scan_latency_ms,
                }
            )

        return result
