"""
KeyStore — resolves a presented credential to a usable ApiKeyRecord.

Flow:
  1. Hash the raw credential (SHA-256) — the raw key is never compared,
     cached, or logged.
  2. Serve from the read-through cache if the entry is younger than the
     TTL, otherwise ask storage (bounded by a timeout).
  3. Re-check the digest with a constant-time compare.
  4. Reject revoked keys, then expired keys.

Cache notes:
  • Keyed by digest; only hits are cached, so a freshly created key is
    visible on its first request.
  • Status (active / expiry) is evaluated on every resolve, so a cached
    record still expires on time.
  • Revocation must call invalidate() — otherwise a revoked key stays
    usable for up to one TTL on this instance.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from sports_api.auth.errors import KeyExpired, KeyNotFound, KeyRevoked, StorageUnavailable
from sports_api.auth.hashing import digests_match, hash_api_key
from sports_api.auth.records import ApiKeyRecord
from sports_api.auth.storage import KeyStorage

logger = logging.getLogger(__name__)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(slots=True)
class _CacheEntry:
    record: ApiKeyRecord
    fetched_at: float


class KeyStore:
    """Read-only credential resolver with a short-TTL cache."""

    def __init__(
        self,
        storage: KeyStorage,
        *,
        cache_ttl: float = 5.0,
        lookup_timeout: float = 2.0,
        clock: Callable[[], datetime.datetime] = utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._storage = storage
        self._cache_ttl = cache_ttl
        self._lookup_timeout = lookup_timeout
        self._clock = clock
        self._monotonic = monotonic
        self._cache: dict[str, _CacheEntry] = {}

    async def resolve(
        self,
        raw_credential: str,
        now: datetime.datetime | None = None,
    ) -> ApiKeyRecord:
        """
        Return the record for `raw_credential`.

        Raises:
            KeyNotFound:        empty credential or unknown digest
            KeyRevoked:         is_active is false
            KeyExpired:         expires_at has passed
            StorageUnavailable: lookup timed out or storage is down
        """
        if not raw_credential:
            raise KeyNotFound("empty credential")

        key_hash = hash_api_key(raw_credential)
        record = self._cached(key_hash)
        if record is None:
            record = await self._lookup(key_hash)

        if record is None or not digests_match(key_hash, record.key_hash):
            raise KeyNotFound("no api key matches the presented credential")

        now = now or self._clock()
        if not record.is_active:
            raise KeyRevoked(f"api key {record.key_prefix} is revoked")
        if record.is_expired(now):
            raise KeyExpired(f"api key {record.key_prefix} expired at {record.expires_at}")

        return record

    # ── Cache management ────────────────────────────────────
    def invalidate(self, key_id: int) -> bool:
        """Drop any cached entry for `key_id`. Returns True if one was removed."""
        stale = [h for h, entry in list(self._cache.items()) if entry.record.id == key_id]
        for key_hash in stale:
            self._cache.pop(key_hash, None)
        if stale:
            logger.info("Invalidated cached api key id=%s", key_id)
        return bool(stale)

    def invalidate_hash(self, key_hash: str) -> bool:
        return self._cache.pop(key_hash, None) is not None

    def clear(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # ── Internals ───────────────────────────────────────────
    def _cached(self, key_hash: str) -> ApiKeyRecord | None:
        if self._cache_ttl <= 0:
            return None
        entry = self._cache.get(key_hash)
        if entry is None:
            return None
        if self._monotonic() - entry.fetched_at >= self._cache_ttl:
            self._cache.pop(key_hash, None)
            return None
        return entry.record

    async def _lookup(self, key_hash: str) -> ApiKeyRecord | None:
        try:
            record = await asyncio.wait_for(
                self._storage.find_by_key_hash(key_hash),
                timeout=self._lookup_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("API key lookup timed out after %.2fs", self._lookup_timeout)
            raise StorageUnavailable("api key lookup timed out") from exc

        if record is None or not digests_match(key_hash, record.key_hash):
            return record
        if self._cache_ttl > 0:
            self._cache[key_hash] = _CacheEntry(record=record, fetched_at=self._monotonic())
        return record
