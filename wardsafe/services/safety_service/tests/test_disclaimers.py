"""Tests for disclaimer selection and composition."""
import pytest

from wardsafe.services.safety_service.disclaimers import (
    DISCLAIMER_DIVIDER,
    EMERGENCY_DISCLAIMER,
    GENERAL_DISCLAIMER,
    MEDICATION_DISCLAIMER,
    MENTAL_HEALTH_DISCLAIMER,
    SYMPTOM_DISCLAIMER,
    DisclaimerSelector,
    select_disclaimers,
)


@pytest.fixture
def selector():
    return DisclaimerSelector()


class TestSelection:
    """Keyword-driven disclaimer selection."""

    def test_general_always_present(self, selector):
        assert selector.select("How much water should I drink?") == [GENERAL_DISCLAIMER]

    def test_symptom_topic(self, selector):
        assert selector.select("My knee hurts") == [
            GENERAL_DISCLAIMER,
            SYMPTOM_DISCLAIMER,
        ]

    def test_medication_topic(self, selector):
        assert MEDICATION_DISCLAIMER in selector.select("Is this medicine safe?")

    def test_mental_health_topic(self, selector):
        disclaimers = selector.select("I have been dealing with anxiety")

        assert MENTAL_HEALTH_DISCLAIMER in disclaimers
        assert "988" in MENTAL_HEALTH_DISCLAIMER

    def test_emergency_first_then_general(self, selector):
        disclaimers = selector.select("sudden chest pain")

        assert disclaimers[0] == EMERGENCY_DISCLAIMER
        assert disclaimers[1] == GENERAL_DISCLAIMER
        assert SYMPTOM_DISCLAIMER in disclaimers

    def test_topics_in_fixed_order(self, selector):
        disclaimers = selector.select("Severe stress, pain and a new drug")

        assert disclaimers == [
            EMERGENCY_DISCLAIMER,
            GENERAL_DISCLAIMER,
            SYMPTOM_DISCLAIMER,
            MEDICATION_DISCLAIMER,
            MENTAL_HEALTH_DISCLAIMER,
        ]

    def test_convenience_function(self):
        assert select_disclaimers("hello") == [GENERAL_DISCLAIMER]


class TestCompose:
    """Disclaimers are appended after a divider."""

    def test_compose(self):
        text = DisclaimerSelector.compose("Answer.", ["A", "B"])

        assert text == "Answer." + DISCLAIMER_DIVIDER + "A\n\nB"

    def test_output_preserved_as_prefix(self, selector):
        output = "Drink fluids and rest."
        text = selector.compose(output, selector.select("I feel sick"))

        assert text.startswith(output + DISCLAIMER_DIVIDER)
        assert text.endswith(SYMPTOM_DISCLAIMER)
