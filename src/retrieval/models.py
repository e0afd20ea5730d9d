# src/retrieval/models.py — v1
"""Cache domain model: CacheEntry with an absolute expiry."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """Single cache entry. value is any JSON-serializable payload."""

    key: str
    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at
