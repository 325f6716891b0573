"""Fixed-window per-client rate limiter (per-process, best-effort)."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional

from neo_mcp.cache import Clock, now_ms
from neo_mcp.errors import RateLimitError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RateLimitBucket:
    count: int
    reset_time: float


class FixedWindowRateLimiter:
    """
    Count requests per client identifier inside a fixed window.

    A bucket whose reset time has passed is treated as absent and replaced on
    the next request. ``start()`` runs a sweep every window so idle clients do
    not accumulate buckets.
    """

    def __init__(
        self,
        max_requests: int = 60,
        window_ms: int = 60_000,
        enabled: bool = True,
        *,
        clock: Clock = now_ms,
    ) -> None:
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.enabled = enabled
        self._clock = clock
        self._buckets: Dict[str, RateLimitBucket] = {}
        self._sweeper: Optional[asyncio.Task] = None
        logger.info(
            "rate limiter initialized max_requests=%s window_ms=%s enabled=%s",
            max_requests,
            window_ms,
            enabled,
        )

    def check(self, client_id: str) -> bool:
        """Record one request for ``client_id``; raise RateLimitError when over quota."""
        if not self.enabled:
            return True

        now = self._clock()
        bucket = self._buckets.get(client_id)
        if bucket is not None and bucket.reset_time <= now:
            bucket = None

        if bucket is None:
            self._buckets[client_id] = RateLimitBucket(count=1, reset_time=now + self.window_ms)
            return True

        bucket.count += 1
        if bucket.count > self.max_requests:
            retry_after = math.ceil((bucket.reset_time - now) / 1000)
            logger.warning(
                "rate limit exceeded client=%s count=%s max=%s retry_after=%s",
                client_id,
                bucket.count,
                self.max_requests,
                retry_after,
            )
            raise RateLimitError(
                f"Rate limit exceeded. Try again in {retry_after} seconds.",
                retry_after=retry_after,
                details={"limit": self.max_requests, "current": bucket.count},
            )
        return True

    def reset(self, client_id: str) -> None:
        self._buckets.pop(client_id, None)

    def sweep(self) -> int:
        """Drop buckets whose window has ended. Returns how many were removed."""
        now = self._clock()
        expired = [client_id for client_id, bucket in self._buckets.items() if bucket.reset_time <= now]
        for client_id in expired:
            del self._buckets[client_id]
        if expired:
            logger.debug("rate limiter sweep removed=%s", len(expired))
        return len(expired)

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        logger.info("rate limiting %s", "enabled" if enabled else "disabled")

    def update_settings(self, max_requests: Optional[int] = None, window_ms: Optional[int] = None) -> None:
        if max_requests is not None:
            self.max_requests = max_requests
        if window_ms is not None:
            self.window_ms = window_ms
        logger.info("rate limiter settings max_requests=%s window_ms=%s", self.max_requests, self.window_ms)

    def bucket_count(self) -> int:
        return len(self._buckets)

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.window_ms / 1000)
            self.sweep()
