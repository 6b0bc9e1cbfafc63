"""Unit tests for API key hashing and generation."""

from __future__ import annotations

import hashlib

from sports_api.auth.hashing import (
    digests_match,
    display_prefix,
    generate_api_key,
    hash_api_key,
)


class TestGenerateKey:
    """Test API key generation."""

    def test_format(self):
        """Generated key has the sk_live_ prefix."""
        raw_key, _, _ = generate_api_key()

        assert raw_key.startswith("sk_live_")
        assert len(raw_key) > len("sk_live_") + 32

    def test_hash_is_sha256_of_raw_key(self):
        raw_key, key_hash, _ = generate_api_key()

        assert key_hash == hashlib.sha256(raw_key.encode()).hexdigest()
        assert len(key_hash) == 64

    def test_prefix_is_first_12_chars(self):
        raw_key, _, key_prefix = generate_api_key()

        assert key_prefix == raw_key[:12]
        assert key_prefix.startswith("sk_live_")

    def test_uniqueness(self):
        keys = {generate_api_key()[0] for _ in range(10)}
        assert len(keys) == 10


class TestHashAndCompare:
    """Test hashing and digest comparison."""

    def test_hash_deterministic(self):
        assert hash_api_key("sk_live_abc") == hash_api_key("sk_live_abc")

    def test_hash_different_inputs(self):
        assert hash_api_key("key-a") != hash_api_key("key-b")

    def test_digests_match(self):
        digest = hash_api_key("sk_live_abc")
        assert digests_match(digest, hash_api_key("sk_live_abc")) is True
        assert digests_match(digest, hash_api_key("sk_live_abd")) is False

    def test_display_prefix_short_key(self):
        assert display_prefix("short") == "short"
