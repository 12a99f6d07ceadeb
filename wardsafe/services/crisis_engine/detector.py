"""Emergency detector - deterministic override for recognized emergencies.

When any category matches, the turn is answered with a fixed safety
script. The model is never called and the rate limiter is never
consulted: emergency handling must not be deferred by capacity limits.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import EMERGENCY_CATEGORIES, EmergencyCategory, EmergencyResponse

logger = logging.getLogger(__name__)

EMERGENCY_BANNER = "**EMERGENCY DETECTED**"

# Typographic apostrophes folded so "can’t breathe" matches "can't breathe"
_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "ʼ": "'"})


@dataclass(frozen=True)
class EmergencyMatch:
    """One matched category and the keyword that triggered it."""
    category: str
    keyword: str
    response: EmergencyResponse

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "keyword": self.keyword,
            "response": self.response.to_dict(),
        }


class EmergencyDetector:
    """Matches sanitized input against categorized keyword sets.

    Evaluation continues across all categories, so one message may match
    several (chest pain + can't breathe -> cardiac and respiratory).
    """

    def __init__(self, categories: Optional[Sequence[EmergencyCategory]] = None):
        self.categories = tuple(categories or EMERGENCY_CATEGORIES)

        logger.info(
            "EMERGENCY_DETECTOR_INITIALIZED",
            extra={
                "category_count": len(self.categories),
                "keyword_count": sum(len(c.keywords) for c in self.categories),
            }
        )

    def detect(self, text: str) -> List[EmergencyMatch]:
        """Return matched categories in table order.

        Args:
            text: Sanitized message text

        Returns:
            One EmergencyMatch per matched category (may be empty)
        """
        folded = text.translate(_APOSTROPHES).casefold()
        matches = []
        for category in self.categories:
            for keyword in category.keywords:
                if keyword.casefold() in folded:
                    matches.append(EmergencyMatch(
                        category=category.name,
                        keyword=keyword,
                        response=category.response,
                    ))
                    break

        if matches:
            logger.critical(
                "EMERGENCY_DETECTED",
                extra={
                    "categories": [m.category for m in matches],
                    "action": "MODEL_BYPASSED",
                }
            )

        return matches

    @staticmethod
    def render(matches: Sequence[EmergencyMatch]) -> str:
        """Render matched response bundles as the assistant message.

        Output is a pure function of the matches: header per category,
        compassionate message if present, hotline(s), numbered steps.
        """
        lines = [EMERGENCY_BANNER, ""]
        for match in matches:
            response = match.response
            lines.append(f"### {match.category.upper()} EMERGENCY")
            lines.append("")
            if response.compassionate_message:
                lines.append(response.compassionate_message)
                lines.append("")
            lines.append(f"**Call Now: {response.hotline}**")
            if response.alternate_hotline:
                lines.append(f"**Or: {response.alternate_hotline}**")
            lines.append("")
            lines.append("**Immediate Steps:**")
            for number, instruction in enumerate(response.instructions, start=1):
                lines.append(f"{number}. {instruction}")
            lines.append("")
        return "\n".join(lines).rstrip("\n") + "\n"
