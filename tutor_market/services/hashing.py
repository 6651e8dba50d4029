"""Deterministic identifier digests.

Raw emails and student IDs never leave the process that holds the salt: callers
store and compare SHA-256 digests only. Digests are one-way; use
verify_identifier to check a candidate value, never try to reverse one.
"""
import hashlib
import hmac

from tutor_market.config import settings

DIGEST_HEX_LENGTH = 64
_PART_SEPARATOR = "\x1f"


def _sha256_hex(message: str) -> str:
    return hashlib.sha256(message.encode("utf-8")).hexdigest()


def _salt(salt: str | None) -> str:
    return settings.HASH_SALT if salt is None else salt


def normalize_identifier(value: str) -> str:
    """Trim; lowercase email-like values. Student IDs are digits and stay as-is."""
    value = value.strip()
    if "@" in value:
        value = value.lower()
    return value


def hash_identifier(value: str, salt: str | None = None) -> str:
    """Salted SHA-256 of the normalized value as 64 lowercase hex characters."""
    return _sha256_hex(normalize_identifier(value) + _salt(salt))


def verify_identifier(value: str, stored_digest: str, salt: str | None = None) -> bool:
    candidate = hash_identifier(value, salt)
    return hmac.compare_digest(candidate.encode("utf-8"), stored_digest.encode("utf-8"))


def composite_hash(email_digest: str, student_id_digest: str) -> str:
    """Registry lookup key derived from the two identifier digests."""
    return _sha256_hex(email_digest + student_id_digest)


def content_digest(*parts: object, salt: str | None = None) -> str:
    """Salted SHA-256 over the exact parts (no normalization). Used for review integrity markers."""
    return _sha256_hex(_PART_SEPARATOR.join(str(p) for p in parts) + _salt(salt))
