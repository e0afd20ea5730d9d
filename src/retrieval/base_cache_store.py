# src/retrieval/base_cache_store.py — v1
"""Abstract TTL cache store interface.

Owned by the retrieval collaborator (public snippets, cached AI analyses),
never by the resolution engine. Concurrent writers for the same key race;
last write wins.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None when missing or expired."""

    @abstractmethod
    async def put(self, key: str, value: Any, ttl_s: float) -> None:
        """Store value under key for ttl_s seconds."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
