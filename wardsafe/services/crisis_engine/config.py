"""Emergency categories, keywords and deterministic response bundles.

Keywords are matched as case-folded substrings. Order matters: categories
are rendered in table order, and keywords within a category are tried in
order (the first hit is reported).
"""
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class EmergencyResponse:
    """Fixed response bundle for one emergency category."""
    hotline: str
    instructions: Tuple[str, ...]
    urgency: str = "CRITICAL"
    alternate_hotline: Optional[str] = None
    compassionate_message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "hotline": self.hotline,
            "alternate_hotline": self.alternate_hotline,
            "instructions": list(self.instructions),
            "urgency": self.urgency,
            "compassionate_message": self.compassionate_message,
        }


@dataclass(frozen=True)
class EmergencyCategory:
    """A named emergency with its trigger keywords and response."""
    name: str
    keywords: Tuple[str, ...]
    response: EmergencyResponse


EMERGENCY_CATEGORIES: Tuple[EmergencyCategory, ...] = (
    EmergencyCategory(
        name="cardiac",
        keywords=(
            "chest pain",
            "heart attack",
            "cardiac arrest",
            "can't breathe",
            "crushing chest",
            "arm pain spreading",
        ),
        response=EmergencyResponse(
            hotline="911",
            instructions=(
                "Call 911 immediately",
                "If trained, begin CPR if unresponsive",
                "If available, use an AED",
                "Keep the person calm and still",
            ),
        ),
    ),
    EmergencyCategory(
        name="stroke",
        keywords=(
            "face drooping",
            "arm weakness",
            "speech difficulty",
            "stroke",
            "sudden numbness",
            "sudden confusion",
        ),
        response=EmergencyResponse(
            hotline="911",
            instructions=(
                "Call 911 immediately - TIME IS CRITICAL",
                "Note the time symptoms started",
                "Remember: F.A.S.T. (Face, Arms, Speech, Time)",
            ),
        ),
    ),
    EmergencyCategory(
        name="respiratory",
        keywords=(
            "can't breathe",
            "choking",
            "severe asthma attack",
            "lips turning blue",
            "gasping for air",
            "anaphylaxis",
        ),
        response=EmergencyResponse(
            hotline="911",
            instructions=(
                "Call 911 immediately",
                "If choking, perform Heimlich maneuver",
                "If anaphylaxis and EpiPen available, use it",
            ),
        ),
    ),
    EmergencyCategory(
        name="mental_health",
        keywords=(
            "want to kill myself",
            "going to end it",
            "suicide",
            "want to die",
            "self harm",
            "cutting myself",
        ),
        response=EmergencyResponse(
            hotline="988 (Suicide & Crisis Lifeline)",
            alternate_hotline="741741 (Crisis Text Line)",
            instructions=(
                "Call 988 NOW - trained counselors available 24/7",
                "Text HOME to 741741 for text-based support",
                "Stay with the person, do not leave them alone",
            ),
            compassionate_message=(
                "I hear that you're in pain right now. What you're feeling is "
                "real, and you deserve support. Please reach out to a crisis "
                "counselor who can help."
            ),
        ),
    ),
    EmergencyCategory(
        name="trauma",
        keywords=(
            "severe bleeding",
            "won't stop bleeding",
            "deep wound",
            "broken bone sticking out",
        ),
        response=EmergencyResponse(
            hotline="911",
            instructions=(
                "Call 911 immediately",
                "Apply pressure to stop bleeding",
                "Do not remove embedded objects",
            ),
        ),
    ),
    EmergencyCategory(
        name="poisoning",
        keywords=(
            "poisoned",
            "overdose",
            "swallowed chemicals",
            "drank bleach",
            "took too many pills",
        ),
        response=EmergencyResponse(
            hotline="1-800-222-1222 (Poison Control)",
            instructions=(
                "Call Poison Control immediately",
                "Do NOT induce vomiting unless instructed",
                "Keep the substance container for reference",
            ),
        ),
    ),
)


# Quick-reference hotlines for the boundary layer
HOTLINES: Tuple[Tuple[str, str], ...] = (
    ("Emergency", "911"),
    ("Suicide & Crisis", "988"),
    ("Poison Control", "1-800-222-1222"),
)
