"""Medical disclaimers appended to every delivered model response.

Selection is keyword-driven on the sanitized user text. The general
disclaimer is always present; the emergency disclaimer, when selected,
always comes first.
"""
import re
from typing import List, Sequence, Tuple

DISCLAIMER_DIVIDER = "\n\n---\n"

GENERAL_DISCLAIMER = (
    "**Medical Disclaimer**: I am an AI assistant and cannot provide medical "
    "diagnoses, prescribe treatments, or replace professional medical advice. "
    "Always consult with a qualified healthcare provider."
)
SYMPTOM_DISCLAIMER = (
    "**Important**: These symptoms could have many causes. "
    "Please seek professional medical advice."
)
MEDICATION_DISCLAIMER = (
    "**Medication Notice**: Never start, stop, or change medication without "
    "consulting your healthcare provider."
)
MENTAL_HEALTH_DISCLAIMER = (
    "**Mental Health Support**: The 988 Suicide & Crisis Lifeline is "
    "available 24/7. Call or text 988."
)
EMERGENCY_DISCLAIMER = "**If this is a medical emergency, call 911 immediately.**"

URGENCY_PATTERN = re.compile(r"emergency|urgent|severe|sudden|worst", re.IGNORECASE)

# Appended after the general disclaimer, in this order
TOPIC_DISCLAIMERS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"symptom|pain|hurt|ache|feel|sick", re.IGNORECASE), SYMPTOM_DISCLAIMER),
    (re.compile(r"medication|drug|pill|dose|prescription|medicine", re.IGNORECASE), MEDICATION_DISCLAIMER),
    (re.compile(r"depress|anxious|anxiety|stress|mental|suicide|harm", re.IGNORECASE), MENTAL_HEALTH_DISCLAIMER),
)


class DisclaimerSelector:
    """Derives the ordered disclaimer list for a message."""

    def select(self, text: str) -> List[str]:
        disclaimers = [GENERAL_DISCLAIMER]
        for pattern, disclaimer in TOPIC_DISCLAIMERS:
            if pattern.search(text):
                disclaimers.append(disclaimer)
        if URGENCY_PATTERN.search(text):
            disclaimers.insert(0, EMERGENCY_DISCLAIMER)
        return disclaimers

    @staticmethod
    def compose(output: str, disclaimers: Sequence[str]) -> str:
        """Append disclaimers after the model output behind a divider."""
        return output + DISCLAIMER_DIVIDER + "\n\n".join(disclaimers)


def select_disclaimers(text: str) -> List[str]:
    """Convenience function for DisclaimerSelector().select()."""
    return DisclaimerSelector().select(text)
