"""
Background last_used_at bookkeeping.

touch() is called on every admitted request and must never slow it down
or fail it. It only records (key_id → timestamp) in a bounded pending
map; a single background task owned by the app lifespan flushes that map
to storage.

Behaviour:
  • Coalescing — repeated touches of a pending key overwrite its
    timestamp, so a busy key costs one UPDATE per flush interval.
  • Bounded — at most `maxsize` keys are pending. When full, the key
    touched least recently is dropped (its timestamp is simply lost).
  • Cancel-safe — a flush interrupted by stop() puts its unwritten
    entries back, so the final drain still writes them.
  • Best-effort — storage errors and timeouts are logged and swallowed.
"""

from __future__ import annotations

import asyncio
import contextlib
import datetime
import logging
from collections import OrderedDict
from collections.abc import Callable

from sports_api.auth.key_store import utcnow
from sports_api.auth.storage import KeyStorage

logger = logging.getLogger(__name__)


class UsageRecorder:
    """Fire-and-forget writer for api_keys.last_used_at."""

    def __init__(
        self,
        storage: KeyStorage,
        *,
        maxsize: int = 1024,
        flush_interval: float = 1.0,
        write_timeout: float = 2.0,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._storage = storage
        self._maxsize = maxsize
        self._flush_interval = flush_interval
        self._write_timeout = write_timeout
        self._clock = clock
        self._pending: OrderedDict[int, datetime.datetime] = OrderedDict()
        self._task: asyncio.Task[None] | None = None
        self.dropped = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def touch(self, key_id: int) -> None:
        """Schedule last_used_at = now for `key_id`. Never raises, never blocks."""
        try:
            now = self._clock()
            if key_id in self._pending:
                self._pending[key_id] = now
                self._pending.move_to_end(key_id)
                return
            if len(self._pending) >= self._maxsize:
                oldest, _ = self._pending.popitem(last=False)
                self.dropped += 1
                logger.warning(
                    "Usage queue full (%d); dropped pending touch for key %s",
                    self._maxsize,
                    oldest,
                )
            self._pending[key_id] = now
        except Exception:
            logger.exception("Failed to queue usage touch for key %s", key_id)

    async def flush(self) -> int:
        """Write every pending touch to storage. Returns the number written."""
        if not self._pending:
            return 0

        batch = list(self._pending.items())
        self._pending = OrderedDict()

        written = 0
        done = 0
        try:
            for key_id, timestamp in batch:
                try:
                    await asyncio.wait_for(
                        self._storage.update_last_used(key_id, timestamp),
                        timeout=self._write_timeout,
                    )
                    written += 1
                except Exception:
                    self.failed += 1
                    logger.warning("Failed to update last_used_at for key %s", key_id, exc_info=True)
                done += 1
        finally:
            # Non-empty only when cancelled mid-batch
            self._requeue(batch[done:])
        return written

    def _requeue(self, entries: list[tuple[int, datetime.datetime]]) -> None:
        """Put unwritten entries back ahead of anything touched since."""
        if not entries:
            return
        merged = OrderedDict((key_id, ts) for key_id, ts in entries if key_id not in self._pending)
        merged.update(self._pending)
        while len(merged) > self._maxsize:
            merged.popitem(last=False)
            self.dropped += 1
        self._pending = merged

    # ── Lifecycle ───────────────────────────────────────────
    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="usage-recorder")
        logger.info("Usage recorder started (flush every %.1fs)", self._flush_interval)

    async def stop(self) -> None:
        """Cancel the flush loop, then drain whatever is still pending."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self.flush()
        logger.info("Usage recorder stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._flush_interval)
            await self.flush()
