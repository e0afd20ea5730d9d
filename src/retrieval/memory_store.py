# src/retrieval/memory_store.py — v2
"""Process-local cache store (default CACHE_BACKEND=memory)."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from shipparties.retrieval.base_cache_store import BaseCacheStore
from shipparties.retrieval.models import CacheEntry

logger = logging.getLogger(__name__)


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed TTL cache.

    Expired entries are dropped when read, and every write sweeps out all
    entries that have expired since, so a long-running server only holds
    live ships.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._entries.pop(key, None)
            return None
        return entry.value

    async def put(self, key: str, value: Any, ttl_s: float) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries[key] = CacheEntry(
            key=key, value=value, created_at=now, expires_at=now + ttl_s
        )

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def _sweep(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug("Evicted %d expired cache entries", len(expired))

    def __len__(self) -> int:
        return len(self._entries)
