# src/retrieval/retriever.py — v1
"""Retrieval collaborator — allow-listed, cached, timeout-bounded web fetch.

All pages for one ship are fetched concurrently (best-effort join): a slow
or failing page is skipped and never blocks the others. If every page
fails or yields no text, the status is "empty". Results are cached per ship
identity with a TTL in an injected BaseCacheStore.

The resolution engine treats this as an opaque function.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

import httpx

from shipparties.config.settings import Settings
from shipparties.core.errors import RetrievalFailure
from shipparties.core.models import PublicSnippet, RetrievalResult, ShipIdentity
from shipparties.logging.context import set_stage_context
from shipparties.retrieval.base_cache_store import BaseCacheStore
from shipparties.retrieval.fetcher import FetchedPage, fetch_page
from shipparties.retrieval.sources import (
    SOURCES,
    PublicSource,
    allowed_sources,
    build_queries,
    is_allowed_url,
    urls_for_source,
)

logger = logging.getLogger(__name__)

_CACHE_PREFIX = "retrieval:"


class PublicSourceRetriever:
    """Fetches public snippets about a ship from allow-listed sources."""

    def __init__(
        self,
        settings: Settings | None = None,
        cache_store: BaseCacheStore | None = None,
        client: httpx.AsyncClient | None = None,
        sources: tuple[PublicSource, ...] = SOURCES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or Settings()
        self._cache = cache_store
        self._client = client
        self._sources = sources
        self._clock = clock

    async def retrieve(self, identity: ShipIdentity) -> RetrievalResult:
        """Fetch with the configured limits and TTL."""
        s = self._settings
        if not s.retrieval_enabled:
            return RetrievalResult(status="empty")
        return await self.fetch_public_sources(
            identity,
            max_sources=s.retrieval_max_sources,
            max_per_source=s.retrieval_max_per_source,
            ttl_s=s.retrieval_ttl_s,
        )

    async def fetch_public_sources(
        self,
        identity: ShipIdentity,
        max_sources: int,
        max_per_source: int,
        ttl_s: float,
    ) -> RetrievalResult:
        """Fetch up to max_sources x max_per_source pages for identity.

        Args:
            identity: Ship identity used to build search terms.
            max_sources: Max allow-listed sources contacted.
            max_per_source: Max URLs fetched per source.
            ttl_s: Cache lifetime of the result.

        Returns:
            RetrievalResult with status "ok" when at least one snippet came back.
        """
        set_stage_context("retrieval")
        cache_key = f"{_CACHE_PREFIX}{identity.cache_key}"
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Retrieval cache hit for %s", identity.describe())
                return RetrievalResult.model_validate(cached)

        result = await self._fetch_uncached(identity, max(1, max_sources), max(1, max_per_source))

        if self._cache is not None:
            await self._cache.put(cache_key, result.model_dump(mode="json"), ttl_s)
        return result

    async def _fetch_uncached(
        self,
        identity: ShipIdentity,
        max_sources: int,
        max_per_source: int,
    ) -> RetrievalResult:
        s = self._settings
        allowlist = s.allowlist
        queries = build_queries(identity, s.retrieval_max_queries)
        if not queries:
            return RetrievalResult(status="empty")

        targets: list[tuple[PublicSource, str]] = []
        for source in allowed_sources(allowlist, self._sources)[:max_sources]:
            for url in urls_for_source(source, identity, queries, max_per_source):
                if is_allowed_url(url, allowlist):
                    targets.append((source, url))
        if not targets:
            return RetrievalResult(status="empty")

        pages = await self._fetch_all(targets)
        retrieved_at = self._clock()
        snippets = [
            PublicSnippet(
                id=f"s{idx}",
                source=page.source,
                url=page.url,
                title=page.title,
                snippet=page.snippet,
                retrieved_at=retrieved_at,
            )
            for idx, page in enumerate(pages[: s.retrieval_max_snippets])
        ]
        logger.info(
            "Retrieval for %s: %d/%d page(s) yielded snippets",
            identity.describe(), len(snippets), len(targets),
        )
        if not snippets:
            return RetrievalResult(status="empty")
        return RetrievalResult(status="ok", snippets=snippets)

    async def _fetch_all(self, targets: list[tuple[PublicSource, str]]) -> list[FetchedPage]:
        s = self._settings
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(
            headers={"User-Agent": s.retrieval_user_agent},
            timeout=httpx.Timeout(s.retrieval_timeout_s),
            follow_redirects=True,
        )
        try:
            outcomes = await asyncio.gather(
                *(
                    fetch_page(client, source, url, s.retrieval_timeout_s, s.retrieval_snippet_chars)
                    for source, url in targets
                ),
                return_exceptions=True,
            )
        finally:
            if owns_client:
                await client.aclose()

        pages: list[FetchedPage] = []
        for outcome in outcomes:
            if isinstance(outcome, RetrievalFailure):
                logger.warning("Public source skipped: %s", outcome)
            elif isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.warning("Public source skipped after unexpected error: %r", outcome)
            elif outcome is not None:
                pages.append(outcome)
        return pages
