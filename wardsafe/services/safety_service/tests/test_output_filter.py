"""Tests for OutputFilter - redaction of unsafe model phrasing."""
import pytest

from wardsafe.services.safety_service.output_filter import (
    REDACTION_MARKER,
    OutputFilter,
)


@pytest.fixture
def output_filter():
    return OutputFilter()


class TestRedaction:
    """Dangerous phrasing is replaced with the marker."""

    def test_definitive_diagnosis(self, output_filter):
        result = output_filter.filter("You definitely have the flu.")

        assert result.text == f"{REDACTION_MARKER} the flu."
        assert result.triggered == ["OUT-01"]
        assert result.modified is True

    def test_directive_dosing(self, output_filter):
        result = output_filter.filter("Take 400mg ibuprofen twice a day.")

        assert result.text == f"{REDACTION_MARKER} ibuprofen twice a day."
        assert result.triggered == ["OUT-07"]

    def test_clinician_override(self, output_filter):
        result = output_filter.filter("You should stop taking your medication.")

        assert "stop taking" not in result.text
        assert result.triggered == ["OUT-04"]

    def test_every_occurrence_replaced(self, output_filter):
        result = output_filter.filter(
            "You clearly have a cold. You certainly have a cough."
        )

        assert result.text.count(REDACTION_MARKER) == 2
        assert result.triggered == ["OUT-01"]

    def test_multiple_rules_in_table_order(self, output_filter):
        result = output_filter.filter(
            "It's nothing serious, nothing to worry about."
        )

        assert result.text == f"{REDACTION_MARKER}, {REDACTION_MARKER}."
        assert result.triggered == ["OUT-09", "OUT-10"]

    def test_case_insensitive(self, output_filter):
        result = output_filter.filter("YOU DEFINITELY HAVE a rash")

        assert result.text == f"{REDACTION_MARKER} a rash"


class TestSafeOutput:
    """Safe output passes through untouched."""

    def test_unchanged(self, output_filter):
        text = "Headaches have many causes, including dehydration and stress."

        result = output_filter.filter(text)

        assert result.text == text
        assert result.triggered == []
        assert result.modified is False

    def test_empty(self, output_filter):
        result = output_filter.filter("")

        assert result.text == ""
        assert result.modified is False

    def test_filter_is_idempotent(self, output_filter):
        once = output_filter.filter("You definitely have X. Take 5 pills.").text

        assert output_filter.filter(once).text == once

    def test_custom_marker(self):
        result = OutputFilter(marker="[removed]").filter("You clearly have it")

        assert result.text == "[removed] it"
