"""
AuthGate — one admission decision per request.

Order (short-circuits on the first failure):
  1. KeyStore.resolve     → NOT_FOUND / REVOKED / EXPIRED / UNAVAILABLE
  2. Sport scope check    → SCOPE_DENIED
  3. RateLimiter.check    → RATE_LIMITED (with retry_after)
  4. Allow, then UsageRecorder.touch (fire-and-forget)

Auth runs before the limiter, so unknown, revoked or out-of-scope keys
never consume quota. A request is either fully allowed or denied with
exactly one reason.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from dataclasses import dataclass

from sports_api.auth.errors import AuthenticationError, DenyReason
from sports_api.auth.key_store import KeyStore, utcnow
from sports_api.services.rate_limiter import RateLimiter, Throttled
from sports_api.services.usage_recorder import UsageRecorder

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Allow:
    """Admitted request context handed to the route."""

    key_id: int
    key_prefix: str
    rate_limit: int
    remaining: int
    reset_after: float


@dataclass(frozen=True, slots=True)
class Deny:
    """Refused request. retry_after is set only for RATE_LIMITED."""

    reason: DenyReason
    retry_after: float | None = None

    @property
    def retryable(self) -> bool:
        return self.reason.retryable


Decision = Allow | Deny


class AuthGate:
    """Credential + scope + quota check for one sport-scoped request."""

    def __init__(
        self,
        key_store: KeyStore,
        rate_limiter: RateLimiter,
        usage_recorder: UsageRecorder | None = None,
        *,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self.key_store = key_store
        self.rate_limiter = rate_limiter
        self.usage_recorder = usage_recorder
        self._clock = clock

    async def authorize(self, raw_credential: str | None, requested_sport: str) -> Decision:
        now = self._clock()

        # ── 1. Resolve credential ───────────────────────────
        try:
            record = await self.key_store.resolve(raw_credential or "", now=now)
        except AuthenticationError as exc:
            if exc.reason is DenyReason.UNAVAILABLE:
                logger.warning("Admission unavailable: %s", exc)
            else:
                logger.info("Admission denied (%s): %s", exc.reason.value, exc)
            return Deny(exc.reason)

        # ── 2. Scope ────────────────────────────────────────
        if not record.allowed_sports.allows(requested_sport):
            logger.info(
                "Admission denied (scope_denied): key %s has no access to %r",
                record.key_prefix,
                requested_sport,
            )
            return Deny(DenyReason.SCOPE_DENIED)

        # ── 3. Quota ────────────────────────────────────────
        decision = self.rate_limiter.check(
            record.id, record.rate_limit_per_minute, now.timestamp()
        )
        if isinstance(decision, Throttled):
            logger.info(
                "Admission denied (rate_limited): key %s over %d/min, retry in %.1fs",
                record.key_prefix,
                record.rate_limit_per_minute,
                decision.retry_after,
            )
            return Deny(DenyReason.RATE_LIMITED, retry_after=decision.retry_after)

        # ── 4. Admit ────────────────────────────────────────
        self._touch(record.id)
        return Allow(
            key_id=record.id,
            key_prefix=record.key_prefix,
            rate_limit=record.rate_limit_per_minute,
            remaining=decision.remaining,
            reset_after=decision.reset_after,
        )

    def _touch(self, key_id: int) -> None:
        if self.usage_recorder is None:
            return
        try:
            self.usage_recorder.touch(key_id)
        except Exception:
            # Usage bookkeeping never turns an admission into a denial
            logger.exception("Usage recorder failed for key %s", key_id)
