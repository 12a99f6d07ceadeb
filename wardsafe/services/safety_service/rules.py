"""Declarative rule tables for input and output screening.

Each table is an ordered, immutable sequence of ThreatPattern entries
evaluated by one generic matcher. Rule content is tunable data; the
matcher is the only logic.

Tables:
- INJECTION_RULES: prompt-injection and markup vectors (HIGH, blocking)
- HEALTHCARE_BOUNDARY_RULES: requests beyond general education (MEDIUM, audited)
- OUTPUT_DANGER_RULES: unsafe phrasing in model output (HIGH, redacted)
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence, Tuple


class Severity(Enum):
    """Severity of a matched rule."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class ThreatPattern:
    """One rule: compiled pattern tagged with category and severity."""
    pattern_id: str
    pattern: re.Pattern
    category: str
    severity: Severity


@dataclass(frozen=True)
class ThreatMatch:
    """A rule that matched a piece of text."""
    pattern_id: str
    matched_text: str
    category: str
    severity: Severity

    def to_dict(self) -> dict:
        return {
            "pattern_id": self.pattern_id,
            "matched_text": self.matched_text,
            "category": self.category,
            "severity": self.severity.value,
        }


class RuleTable:
    """Ordered collection of ThreatPattern entries with a single matcher."""

    def __init__(self, name: str, patterns: Sequence[ThreatPattern]):
        self.name = name
        self._patterns: Tuple[ThreatPattern, ...] = tuple(patterns)

    @classmethod
    def build(
        cls,
        name: str,
        prefix: str,
        severity: Severity,
        rules: Iterable[Tuple[str, str]],
    ) -> "RuleTable":
        """Compile (regex, category) pairs into a table.

        Pattern ids are assigned in order as PREFIX-NN.
        """
        patterns = [
            ThreatPattern(
                pattern_id=f"{prefix}-{index:02d}",
                pattern=re.compile(regex, re.IGNORECASE),
                category=category,
                severity=severity,
            )
            for index, (regex, category) in enumerate(rules, start=1)
        ]
        return cls(name, patterns)

    def __iter__(self):
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def match(self, text: str) -> List[ThreatMatch]:
        """Return every rule that matches, in table order.

        Matching is exhaustive: all rules are evaluated even after a hit.
        Only the first occurrence per rule is reported.
        """
        matches = []
        for rule in self._patterns:
            found = rule.pattern.search(text)
            if found:
                matches.append(ThreatMatch(
                    pattern_id=rule.pattern_id,
                    matched_text=found.group(0),
                    category=rule.category,
                    severity=rule.severity,
                ))
        return matches

    def redact(self, text: str, marker: str) -> Tuple[str, List[str]]:
        """Replace every match of every rule with marker.

        Rules are applied in order to the progressively redacted text.

        Returns:
            (redacted text, ids of rules that fired)
        """
        triggered = []
        result = text
        for rule in self._patterns:
            result, count = rule.pattern.subn(marker, result)
            if count:
                triggered.append(rule.pattern_id)
        return result, triggered


INJECTION_RULES = RuleTable.build("injection", "INJ", Severity.HIGH, [
    # Instruction override
    (r"ignore\s+(all\s+)?(previous|above|prior)\s+(instructions?|prompts?|rules?)", "instruction_override"),
    (r"forget\s+(everything|all|your)\s+(you\s+)?(know|learned|instructions?)", "instruction_override"),
    (r"disregard\s+(all\s+)?(safety|guidelines?|rules?|instructions?)", "instruction_override"),
    (r"bypass\s+(your\s+)?(safety|security|filters?|restrictions?)", "instruction_override"),
    (r"override\s+(your\s+)?(programming|instructions?|guidelines?)", "instruction_override"),
    (r"ignore\s+(the\s+)?medical\s+disclaimer", "instruction_override"),
    (r"skip\s+(the\s+)?safety\s+warning", "instruction_override"),
    # Role hijack
    (r"you\s+are\s+now\s+(a\s+)?new\s+(ai|assistant|bot)", "role_hijack"),
    (r"pretend\s+(you\s+are|to\s+be)\s+(a\s+)?(different|another|new)", "role_hijack"),
    (r"act\s+as\s+(if|though)\s+you\s+(have\s+)?no\s+(restrictions?|limits?)", "role_hijack"),
    # Jailbreak aliases
    (r"\bdan\s+(mode|prompt)\b", "jailbreak"),
    (r"\bdeveloper\s+mode\b", "jailbreak"),
    (r"\bjailbreak\b", "jailbreak"),
    (r"\bunfiltered\s+mode\b", "jailbreak"),
    (r"\bno\s+restrictions?\s+mode\b", "jailbreak"),
    # Claimed medical authority
    (r"you\s+are\s+(a\s+)?licensed\s+(doctor|physician|medical)", "medical_authority"),
    (r"pretend\s+you\s+can\s+(diagnose|prescribe|treat)", "medical_authority"),
    (r"give\s+me\s+(a\s+)?definitive\s+(diagnosis|treatment)", "medical_authority"),
    (r"you\s+have\s+(medical|clinical)\s+authority", "medical_authority"),
    (r"act\s+as\s+(a\s+)?real\s+(doctor|physician|nurse)", "medical_authority"),
    # System prompt exfiltration
    (r"reveal\s+(your\s+)?(system\s+)?prompt", "prompt_exfiltration"),
    (r"show\s+(me\s+)?(your\s+)?(instructions?|training)", "prompt_exfiltration"),
    (r"what\s+(are\s+)?(your\s+)?hidden\s+instructions?", "prompt_exfiltration"),
    (r"output\s+(your\s+)?(system|initial)\s+prompt", "prompt_exfiltration"),
    # Script / markup vectors
    (r"<script[^>]*>", "markup_injection"),
    (r"javascript:", "markup_injection"),
    (r"\bon\w+\s*=", "markup_injection"),
    (r"\beval\s*\(", "markup_injection"),
    (r"\bexec\s*\(", "markup_injection"),
])


HEALTHCARE_BOUNDARY_RULES = RuleTable.build("healthcare_boundary", "HCB", Severity.MEDIUM, [
    (r"give\s+me\s+(the\s+)?(exact|specific)\s+dosage", "dosing_request"),
    (r"prescribe\s+(me\s+)?(a\s+)?medication", "dosing_request"),
    (r"what\s+drug\s+should\s+i\s+take", "dosing_request"),
    (r"confirm\s+(my\s+)?diagnosis", "diagnosis_confirmation"),
    (r"tell\s+me\s+i\s+(have|don't\s+have)", "diagnosis_confirmation"),
    (r"guarantee\s+(this|the)\s+treatment", "treatment_guarantee"),
    (r"promise\s+(me\s+)?(this|it)\s+will\s+(work|cure)", "treatment_guarantee"),
    (r"am\s+i\s+going\s+to\s+die", "prognosis"),
    (r"how\s+long\s+do\s+i\s+have\s+(left\s+)?to\s+live", "prognosis"),
])


OUTPUT_DANGER_RULES = RuleTable.build("output_danger", "OUT", Severity.HIGH, [
    (r"you\s+(definitely|certainly|clearly)\s+have", "definitive_diagnosis"),
    (r"this\s+is\s+(definitely|certainly)\s+\w+\s+(disease|cancer|condition)", "definitive_diagnosis"),
    (r"i\s+(diagnose|am\s+diagnosing)\s+you\s+with", "definitive_diagnosis"),
    (r"stop\s+taking\s+(your\s+)?medication", "clinician_override"),
    (r"you\s+don't\s+need\s+(to\s+see\s+)?a\s+doctor", "clinician_override"),
    (r"ignore\s+your\s+doctor's\s+advice", "clinician_override"),
    (r"take\s+\d+\s*(mg|ml|pills?|tablets?)", "directive_dosing"),
    (r"you\s+will\s+(definitely|certainly)\s+(be\s+fine|recover|survive)", "false_reassurance"),
    (r"nothing\s+to\s+worry\s+about", "false_reassurance"),
    (r"it's\s+(probably\s+)?nothing\s+serious", "false_reassurance"),
])
