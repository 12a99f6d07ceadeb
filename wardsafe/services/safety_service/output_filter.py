"""Output filter - redacts unsafe phrasing from model responses.

Textual, not semantic: false negatives are expected, false positives only
cost a redaction (the response is never blocked).
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .rules import OUTPUT_DANGER_RULES, RuleTable

logger = logging.getLogger(__name__)

REDACTION_MARKER = "[This statement was modified for safety]"


@dataclass(frozen=True)
class FilterResult:
    """Filtered model output plus the ids of the rules that fired."""
    text: str
    triggered: List[str] = field(default_factory=list)

    @property
    def modified(self) -> bool:
        return bool(self.triggered)


class OutputFilter:
    """Applies the output danger table to model text."""

    def __init__(
        self,
        rules: Optional[RuleTable] = None,
        marker: str = REDACTION_MARKER,
    ):
        self.rules = OUTPUT_DANGER_RULES if rules is None else rules
        self.marker = marker

    def filter(self, text: str) -> FilterResult:
        """Replace every danger-pattern match with the redaction marker.

        Args:
            text: Raw model output

        Returns:
            FilterResult with redacted text and triggered pattern ids
        """
        if not text:
            return FilterResult(text="")

        filtered, triggered = self.rules.redact(text, self.marker)

        if triggered:
            logger.warning(
                "DANGEROUS_OUTPUT_FILTERED",
                extra={
                    "pattern_ids": triggered,
                    "original_length": len(text),
                    "filtered_length": len(filtered),
                }
            )

        return FilterResult(text=filtered, triggered=triggered)
