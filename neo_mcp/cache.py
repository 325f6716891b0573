"""In-memory TTL cache with lazy expiry (per-process, not shared across workers)."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


def now_ms() -> float:
    """Wall-clock time in epoch milliseconds."""
    return time.time() * 1000


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class TTLCache(Generic[T]):
    """
    String-keyed store whose entries expire ``ttl`` milliseconds after ``set``.

    Expired entries are evicted when read or listed; there is no background sweep.
    ``get_or_compute`` is single-flight: concurrent misses on the same key share
    one factory call instead of each running their own.
    """

    def __init__(self, name: str = "default", default_ttl_ms: float = 60_000, *, clock: Clock = now_ms) -> None:
        self.name = name
        self.default_ttl_ms = default_ttl_ms
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._inflight: Dict[str, asyncio.Future] = {}
        logger.debug("cache=%s created default_ttl_ms=%s", name, default_ttl_ms)

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            logger.debug("cache=%s expired key=%s", self.name, key)
            return None
        return entry.value

    def set(self, key: str, value: T, ttl_ms: Optional[float] = None) -> None:
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    async def get_or_compute(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        ttl_ms: Optional[float] = None,
    ) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached

        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await factory()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so a future nobody else awaited does not log a warning.
            future.exception()
            raise
        else:
            self.set(key, value, ttl_ms)
            future.set_result(value)
            return value
        finally:
            self._inflight.pop(key, None)

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> List[str]:
        return [key for key, _ in self.entries()]

    def size(self) -> int:
        return len(self._entries)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def entries(self) -> List[Tuple[str, T]]:
        """Return non-expired ``(key, value)`` pairs, evicting expired ones."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("cache=%s evicted expired=%s", self.name, len(expired))
        return [(key, entry.value) for key, entry in self._entries.items()]
