# src/retrieval/json_store.py — v2
"""JSON file-based cache store (CACHE_BACKEND=json).

Stores cache entries as individual JSON files under CACHE_ROOT, so cached
public snippets survive restarts.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from shipparties.retrieval.base_cache_store import BaseCacheStore
from shipparties.retrieval.models import CacheEntry

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str, clock: Callable[[], float] = time.time) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        """Retrieve a live cache entry by key."""
        path = self._entry_path(key)
        if not path.exists():
            return None
        try:
            entry = CacheEntry(**json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            logger.warning("Failed to read cache entry %s: %s", key, e)
            return None
        if entry.is_expired(self._clock()):
            path.unlink(missing_ok=True)
            return None
        return entry.value

    async def put(self, key: str, value: Any, ttl_s: float) -> None:
        """Store a cache entry."""
        now = self._clock()
        entry = CacheEntry(key=key, value=value, created_at=now, expires_at=now + ttl_s)
        path = self._entry_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(entry.model_dump_json(indent=2), encoding="utf-8")

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        self._entry_path(key).unlink(missing_ok=True)

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key (keys contain '|' and spaces)."""
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
        return self._root / f"{digest}.json"
