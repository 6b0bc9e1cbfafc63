"""
API key hashing utilities.

Security notes:
  • SHA-256 is used for key hashing — acceptable for API keys because
    they are high-entropy random strings (not low-entropy passwords).
    bcrypt/argon2 would add latency to every request.
  • Raw keys use the sk_live_ prefix (convention, not security).
  • generate_api_key() returns the raw key exactly once — the caller
    must display it to the user immediately. It is never stored.
"""

import hashlib
import hmac
import secrets

_KEY_PREFIX = "sk_live_"
_DISPLAY_PREFIX_LEN = 12  # "sk_live_a1b2"


def hash_api_key(raw_key: str) -> str:
    """
    Hash a raw API key using SHA-256.

    Returns the hex digest string for storage/lookup.
    """
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def digests_match(presented_hash: str, stored_hash: str) -> bool:
    """Constant-time comparison of two hex digests."""
    return hmac.compare_digest(presented_hash, stored_hash)


def display_prefix(raw_key: str) -> str:
    """Non-secret fragment of a key, safe for logs and listings."""
    return raw_key[:_DISPLAY_PREFIX_LEN]


def generate_api_key() -> tuple[str, str, str]:
    """
    Generate a new API key.

    Returns:
        (raw_key, key_hash, key_prefix) — raw_key is shown once,
        key_hash and key_prefix are stored.
    """
    random_part = secrets.token_urlsafe(32)  # 43 chars = 256 bits
    raw_key = f"{_KEY_PREFIX}{random_part}"
    return raw_key, hash_api_key(raw_key), display_prefix(raw_key)
