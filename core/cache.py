"""
In-process TTL cache for expensive query results.

Entries are keyed by a canonical serialization of the request options and
expire after a fixed time-to-live. Expiry is lazy: the read path always
re-checks an entry's age, and a sweep after every write drops whatever has
gone stale. There is no background timer.

Concurrent misses on the same key may each run ``compute``; the last write
wins. Only the map itself is guarded, never the computation.

Payloads are deep-copied on the way in and on every hit, so callers that
mutate a returned result never alter what later callers receive.
"""

from __future__ import annotations

import asyncio
import copy
import hashlib
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from core.exceptions import CacheCorruptionError

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 300_000


def make_cache_key(prefix: str, payload: dict[str, Any]) -> str:
    """Produce a deterministic cache key from request options."""
    raw = json.dumps(payload, sort_keys=True, default=str)
    digest = hashlib.sha256(raw.encode()).hexdigest()[:16]
    return f"cache:{prefix}:{digest}"


def _now_ms() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class CacheEntry:
    payload: Any
    inserted_at_ms: float


class QueryCache:
    """Time-bounded memoization of query results."""

    def __init__(
        self,
        ttl_ms: int = DEFAULT_TTL_MS,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        if ttl_ms <= 0:
            msg = f"Cache TTL must be positive, got {ttl_ms}"
            raise ValueError(msg)
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, entry: CacheEntry, now: float, ttl_ms: int) -> bool:
        return now - entry.inserted_at_ms < ttl_ms

    async def get(self, key: str, ttl_ms: int | None = None) -> Any | None:
        """Return the cached payload for ``key`` or None when absent/stale."""
        ttl = ttl_ms or self.ttl_ms
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not isinstance(entry, CacheEntry):
                msg = f"Cache entry for {key} has unexpected type"
                raise CacheCorruptionError(msg, {"type": type(entry).__name__})
            if not self._is_fresh(entry, self._clock(), ttl):
                del self._entries[key]
                return None
            return copy.deepcopy(entry.payload)

    async def set(self, key: str, payload: Any) -> None:
        stored = copy.deepcopy(payload)
        async with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(payload=stored, inserted_at_ms=now)
            self._sweep_locked(now)

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        ttl_ms: int | None = None,
    ) -> Any:
        """Return a fresh cached payload, or run ``compute`` and store its result."""
        cached = await self.get(key, ttl_ms)
        if cached is not None:
            logger.debug("Query cache hit for %s", key)
            return cached

        logger.debug("Query cache miss for %s", key)
        result = await compute()
        await self.set(key, result)
        return result

    async def sweep(self) -> int:
        async with self._lock:
            return self._sweep_locked(self._clock())

    async def invalidate(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def _sweep_locked(self, now: float) -> int:
        stale = [
            key
            for key, entry in self._entries.items()
            if not self._is_fresh(entry, now, self.ttl_ms)
        ]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("Evicted %d stale query cache entries", len(stale))
        return len(stale)
