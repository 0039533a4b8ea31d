"""
Security utilities for PIN hashing and validation.

PINs are short, so they are stretched with PBKDF2 and a random per-member
salt. Plaintext PINs are never stored.
"""

import base64
import binascii
import hashlib
import re
import secrets

DEFAULT_PIN = "4444"

_PIN_PATTERN = re.compile(r"[0-9]{4}")


class PinHasher:
    """
    PIN hashing using PBKDF2 with SHA-256.

    The stored form is base64(salt + digest).
    """

    ITERATIONS = 100_000
    SALT_LENGTH = 16

    @classmethod
    def hash_pin(cls, pin: str) -> str:
        """
        Hash a PIN with a random salt.

        Args:
            pin: Plain text PIN to hash

        Returns:
            Base64-encoded string containing salt and hash
        """
        salt = secrets.token_bytes(cls.SALT_LENGTH)
        digest = hashlib.pbkdf2_hmac("sha256", pin.encode("utf-8"), salt, cls.ITERATIONS)
        return base64.b64encode(salt + digest).decode("utf-8")

    @classmethod
    def verify_pin(cls, pin: str, stored_hash: str) -> bool:
        """
        Verify a PIN against a stored hash.

        Args:
            pin: Plain text PIN to verify
            stored_hash: Base64-encoded stored hash

        Returns:
            True if the PIN matches, False otherwise (including a malformed hash)
        """
        try:
            combined = base64.b64decode(stored_hash.encode("utf-8"), validate=True)
        except (binascii.Error, ValueError):
            return False

        salt = combined[: cls.SALT_LENGTH]
        expected = combined[cls.SALT_LENGTH :]
        if not salt or not expected:
            return False

        digest = hashlib.pbkdf2_hmac("sha256", pin.encode("utf-8"), salt, cls.ITERATIONS)
        return secrets.compare_digest(digest, expected)


def is_valid_pin(pin) -> bool:
    """A PIN is exactly four ASCII digits."""
    return isinstance(pin, str) and bool(_PIN_PATTERN.fullmatch(pin))


def hash_pin(pin: str) -> str:
    """Hash a PIN using secure defaults."""
    return PinHasher.hash_pin(pin)


def verify_pin(pin: str, stored_hash: str) -> bool:
    """Verify a PIN against a stored hash."""
    return PinHasher.verify_pin(pin, stored_hash)
