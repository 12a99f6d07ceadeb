"""Identifier hashing and message fingerprinting.

Message text never reaches application logs or the audit trail. Session
and client identifiers that appear in logs are keyed-hashed; message text
is reduced to an unkeyed SHA-256 fingerprint so identical inputs can be
correlated across an exported audit trail.
"""
import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)

MIN_SALT_LENGTH = 32

_salt: Optional[bytes] = None


def configure_pii_salt(salt: str) -> None:
    """Set the key used by hash_pii(). Call once at process start.

    Raises:
        ValueError: If salt is shorter than MIN_SALT_LENGTH
    """
    global _salt
    if not salt or len(salt) < MIN_SALT_LENGTH:
        logger.critical(
            "IDENTIFIER_SALT_REJECTED",
            extra={"min_length": MIN_SALT_LENGTH}
        )
        raise ValueError(f"PII salt must be at least {MIN_SALT_LENGTH} characters")

    _salt = salt.encode()
    logger.info("IDENTIFIER_SALT_CONFIGURED", extra={"salt_length": len(salt)})


def hash_pii(value: str) -> str:
    """HMAC-SHA256 of an identifier, hex encoded.

    Raises:
        RuntimeError: If configure_pii_salt() has not been called
    """
    if _salt is None:
        raise RuntimeError("PII salt not configured. Call configure_pii_salt() first.")
    return hmac.new(_salt, value.encode(), hashlib.sha256).hexdigest()


def hash_text_for_audit(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
