"""
In-memory fixed-window rate limiter.

Enforces each API key's requests-per-minute quota with one counter per
(key, window) held in a sharded map owned by the limiter.

Design decisions:
  • Fixed window — window = floor(now / window_seconds). O(1) memory per
    active key. A client can burst up to 2× its limit across a window
    boundary; that imprecision is accepted.
  • Increment, then compare — the request is admitted iff the
    post-increment count ≤ limit, so admissions per window can never
    exceed the limit no matter how requests interleave.
  • Sharded locks — keys hash onto N shards, each with its own
    threading.Lock. Safe from the event loop and from threadpool
    dependencies alike; unrelated keys rarely contend.
  • Only the current window is kept per key. A write in a newer window
    replaces the stale counter; sweep() drops counters of idle keys.
  • Per-instance state — no Redis/Postgres round-trip. Horizontal scaling
    multiplies the effective limit by the instance count.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 60
DEFAULT_SHARDS = 16


@dataclass(frozen=True, slots=True)
class Admitted:
    """Request fits in the current window."""

    remaining: int
    reset_after: float


@dataclass(frozen=True, slots=True)
class Throttled:
    """Quota exhausted; retry once the window rolls over."""

    retry_after: float

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds for a Retry-After header (never 0)."""
        return max(1, math.ceil(self.retry_after))


RateDecision = Admitted | Throttled


@dataclass(slots=True)
class _WindowCounter:
    window: int
    count: int = 0


@dataclass(slots=True)
class _Shard:
    lock: threading.Lock = field(default_factory=threading.Lock)
    counters: dict[int, _WindowCounter] = field(default_factory=dict)


class RateLimiter:
    """Per-key fixed-window counter table."""

    def __init__(
        self,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        shards: int = DEFAULT_SHARDS,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if shards <= 0:
            raise ValueError("shards must be positive")
        self.window_seconds = window_seconds
        self._shards = [_Shard() for _ in range(shards)]

    def window_for(self, now: float) -> int:
        return math.floor(now / self.window_seconds)

    def seconds_until_rollover(self, now: float) -> float:
        window_end = (self.window_for(now) + 1) * self.window_seconds
        return window_end - now

    def check(self, key_id: int, limit: int, now: float) -> RateDecision:
        """
        Count one request for `key_id` at epoch time `now`.

        Returns Admitted while the window's count is within `limit`,
        Throttled afterwards.
        """
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")

        window = self.window_for(now)
        shard = self._shard(key_id)

        with shard.lock:
            counter = shard.counters.get(key_id)
            if counter is None or counter.window < window:
                counter = _WindowCounter(window=window)
                shard.counters[key_id] = counter
            elif counter.window > window:
                # Clock stepped backwards; count against the newer window
                window = counter.window
            counter.count += 1
            count = counter.count

        reset_after = (window + 1) * self.window_seconds - now
        if count <= limit:
            return Admitted(remaining=limit - count, reset_after=reset_after)
        return Throttled(retry_after=reset_after)

    def current_count(self, key_id: int, now: float) -> int:
        """Admissions counted for `key_id` in the window containing `now`."""
        shard = self._shard(key_id)
        with shard.lock:
            counter = shard.counters.get(key_id)
            if counter is None or counter.window != self.window_for(now):
                return 0
            return counter.count

    def reset(self, key_id: int) -> None:
        shard = self._shard(key_id)
        with shard.lock:
            shard.counters.pop(key_id, None)

    def sweep(self, now: float) -> int:
        """Drop counters from windows before the current one. Returns how many."""
        window = self.window_for(now)
        removed = 0
        for shard in self._shards:
            with shard.lock:
                stale = [k for k, c in shard.counters.items() if c.window < window]
                for key_id in stale:
                    del shard.counters[key_id]
                removed += len(stale)
        if removed:
            logger.debug("Rate limiter sweep dropped %d stale counters", removed)
        return removed

    @property
    def tracked_keys(self) -> int:
        return sum(len(s.counters) for s in self._shards)

    def _shard(self, key_id: int) -> _Shard:
        return self._shards[hash(key_id) % len(self._shards)]
