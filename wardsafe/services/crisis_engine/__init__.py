"""Crisis Engine: deterministic emergency override.

Recognized medical and psychiatric emergencies are answered with a fixed
safety script (hotline, immediate steps). The model is bypassed and the
rate limiter is never consulted.
"""

from .config import EMERGENCY_CATEGORIES, HOTLINES, EmergencyCategory, EmergencyResponse
from .detector import EmergencyDetector, EmergencyMatch

__all__ = [
    "EMERGENCY_CATEGORIES",
    "HOTLINES",
    "EmergencyCategory",
    "EmergencyResponse",
    "EmergencyDetector",
    "EmergencyMatch",
]
