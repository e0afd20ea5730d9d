# src/retrieval/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from shipparties.config.settings import Settings
from shipparties.retrieval.base_cache_store import BaseCacheStore


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from shipparties.retrieval.memory_store import MemoryCacheStore
        return MemoryCacheStore()

    if backend == "json":
        from shipparties.retrieval.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=settings.cache_root)  # type: ignore[union-attr]

    raise ValueError(f"Unsupported cache backend: {backend!r}")
