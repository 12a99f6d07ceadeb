"""Tests for Sanitizer - first layer on every submitted message."""
import pytest

from wardsafe.services.safety_service.sanitizer import (
    Sanitizer,
    get_sanitizer,
    sanitize_input,
)


@pytest.fixture
def sanitizer():
    return Sanitizer()


class TestMarkupRemoval:
    """Markup and script vectors are stripped."""

    def test_script_tags_removed(self, sanitizer):
        result = sanitizer.sanitize("<script>alert(1)</script>What is a fever?")

        assert "<" not in result
        assert "script" not in result.lower()
        assert result.endswith("What is a fever?")

    def test_any_tag_removed(self, sanitizer):
        result = sanitizer.sanitize("<b>bold</b> and <img src=x> text")

        assert result == "bold and text"

    def test_javascript_scheme_removed(self, sanitizer):
        result = sanitizer.sanitize("click javascript:alert(1)")

        assert "javascript:" not in result.lower()

    def test_javascript_scheme_case_insensitive(self, sanitizer):
        result = sanitizer.sanitize("JaVaScRiPt:void(0)")

        assert "javascript" not in result.lower()

    def test_event_handler_removed(self, sanitizer):
        result = sanitizer.sanitize("image onerror=steal() here")

        assert "onerror" not in result
        assert "=" not in result

    def test_spliced_vectors_removed(self, sanitizer):
        """Removing one fragment must not leave a reassembled one behind."""
        result = sanitizer.sanitize("javajavascript:script:alert(1)")

        assert "javascript:" not in result.lower()

    def test_nested_tag_splice_removed(self, sanitizer):
        result = sanitizer.sanitize("<scr<b>ipt>alert(1)")

        assert "<" not in result
        assert "script" not in result


class TestWhitespaceAndControls:
    """Whitespace is normalized and controls are dropped."""

    def test_whitespace_collapsed(self, sanitizer):
        assert sanitizer.sanitize("too   many \t\n spaces") == "too many spaces"

    def test_leading_trailing_trimmed(self, sanitizer):
        assert sanitizer.sanitize("   hello   ") == "hello"

    def test_control_characters_removed(self, sanitizer):
        assert sanitizer.sanitize("he\x00ll\x07o\x7f") == "hello"

    def test_empty_input(self, sanitizer):
        assert sanitizer.sanitize("") == ""

    def test_plain_question_unchanged(self, sanitizer):
        text = "What are common causes of headaches?"

        assert sanitizer.sanitize(text) == text


class TestLengthLimit:
    """Output never exceeds max_input_length."""

    def test_long_input_truncated(self, sanitizer):
        result = sanitizer.sanitize("a" * 5000)

        assert len(result) == 2000

    def test_custom_limit(self):
        result = Sanitizer(max_input_length=10).sanitize("abcdefghijklmnop")

        assert result == "abcdefghij"

    def test_truncation_does_not_leave_trailing_space(self):
        result = Sanitizer(max_input_length=6).sanitize("hello world")

        assert result == "hello"

    def test_invalid_limit_rejected(self):
        with pytest.raises(ValueError):
            Sanitizer(max_input_length=0)


class TestIdempotence:
    """sanitize(sanitize(x)) == sanitize(x)."""

    @pytest.mark.parametrize("text", [
        "plain text",
        "<script>x</script> hi",
        "javajavascript:script: onon=load= x",
        "  spaced \n\n out  ",
        "<<b>i>nested</b>",
        "x" * 2100 + " <b>tail</b>",
        "a\x00b\tc",
    ])
    def test_idempotent(self, sanitizer, text):
        once = sanitizer.sanitize(text)

        assert sanitizer.sanitize(once) == once
        assert len(once) <= sanitizer.max_input_length


class TestConvenienceFunction:
    """Tests for sanitize_input."""

    def test_uses_singleton_for_default_limit(self):
        assert get_sanitizer() is get_sanitizer()
        assert sanitize_input("<i>hi</i>") == "hi"

    def test_custom_limit(self):
        assert sanitize_input("abcdef", max_input_length=3) == "abc"
