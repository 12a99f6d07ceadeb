"""Input sanitization - first layer applied to every submitted message.

Strips markup and script vectors, removes control characters, normalizes
whitespace and enforces the maximum input length. The transform is pure,
never fails, and is idempotent: sanitize(sanitize(x)) == sanitize(x).
"""
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_INPUT_LENGTH = 2000

# Tag-delimited markup: <script>, </b>, <img src=x>
TAG_PATTERN = re.compile(r"<[^>]*>")

# javascript: URL scheme fragments
JAVASCRIPT_SCHEME_PATTERN = re.compile(r"javascript:", re.IGNORECASE)

# Inline event-handler attributes: onclick=, onerror =
EVENT_HANDLER_PATTERN = re.compile(r"\bon\w+\s*=", re.IGNORECASE)

# C0 controls and DEL
CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x1f\x7f]")

WHITESPACE_PATTERN = re.compile(r"\s+")


class Sanitizer:
    """Removes injection vectors from raw user text.

    Applies, in order:
    1. Whitespace runs (including tabs/newlines) -> single space
    2. Remaining control characters removed
    3. Markup, javascript: and event-handler fragments removed until
       no more matches (removal can splice new fragments together)
    4. Whitespace collapsed again and trimmed
    5. Truncation to max_input_length
    """

    def __init__(self, max_input_length: int = DEFAULT_MAX_INPUT_LENGTH):
        if max_input_length <= 0:
            raise ValueError("max_input_length must be positive")
        self.max_input_length = max_input_length

        self._vector_patterns = (
            TAG_PATTERN,
            JAVASCRIPT_SCHEME_PATTERN,
            EVENT_HANDLER_PATTERN,
        )

        logger.info(
            "SANITIZER_INITIALIZED",
            extra={"max_input_length": max_input_length}
        )

    def sanitize(self, text: str) -> str:
        """Sanitize raw input.

        Args:
            text: Raw user text of any length

        Returns:
            Sanitized text, at most max_input_length characters
        """
        if not text:
            return ""

        result = WHITESPACE_PATTERN.sub(" ", text)
        result = CONTROL_CHAR_PATTERN.sub("", result)
        result = self._strip_vectors(result)
        result = WHITESPACE_PATTERN.sub(" ", result).strip()

        if len(result) > self.max_input_length:
            logger.info(
                "INPUT_TRUNCATED",
                extra={
                    "original_length": len(result),
                    "max_input_length": self.max_input_length,
                }
            )
            result = result[:self.max_input_length].rstrip()

        return result

    def _strip_vectors(self, text: str) -> str:
        """Remove markup/script fragments until the text stops changing.

        Handles splices like "javajavascript:script:" that reassemble
        after a single pass.
        """
        while True:
            original = text
            for pattern in self._vector_patterns:
                text = pattern.sub("", text)
            # Every removal shortens the text, so this terminates
            if text == original:
                return text


# Module-level singleton for the default limit
_sanitizer: Optional[Sanitizer] = None


def get_sanitizer() -> Sanitizer:
    """Get the default-limit Sanitizer instance."""
    global _sanitizer
    if _sanitizer is None:
        _sanitizer = Sanitizer()
    return _sanitizer


def sanitize_input(text: str, max_input_length: int = DEFAULT_MAX_INPUT_LENGTH) -> str:
    """Convenience function to sanitize text.

    Args:
        text: Raw input text
        max_input_length: Truncation limit

    Returns:
        Sanitized text
    """
    if max_input_length == DEFAULT_MAX_INPUT_LENGTH:
        return get_sanitizer().sanitize(text)
    return Sanitizer(max_input_length).sanitize(text)
