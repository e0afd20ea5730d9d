# src/retrieval/fetcher.py — v1
"""Fetch one allow-listed page and reduce it to a text snippet.

Every fetch is timeout-bounded and independent: a failure raises
RetrievalFailure for that page only, which the retriever logs and skips.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

from shipparties.core.errors import RetrievalFailure
from shipparties.retrieval.sources import PublicSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedPage:
    """Text extracted from one fetched page."""

    source: str
    url: str
    title: str
    snippet: str


def html_to_text(html: str) -> tuple[str, str]:
    """Return (title, visible text) for an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    title = soup.title.get_text(" ", strip=True) if soup.title else ""
    text = " ".join(soup.get_text(" ", strip=True).split())
    return " ".join(title.split()), text


async def fetch_page(
    client: httpx.AsyncClient,
    source: PublicSource,
    url: str,
    timeout_s: float,
    snippet_chars: int,
) -> FetchedPage | None:
    """Fetch url and return its snippet, or None when the page has no text.

    Raises:
        RetrievalFailure: On timeout, transport error or non-2xx status.
    """
    try:
        response = await asyncio.wait_for(client.get(url), timeout=timeout_s)
        response.raise_for_status()
    except asyncio.TimeoutError as e:
        raise RetrievalFailure(source.label, url, "timed out") from e
    except httpx.HTTPStatusError as e:
        raise RetrievalFailure(source.label, url, f"HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise RetrievalFailure(source.label, url, f"{type(e).__name__}: {e}") from e

    title, text = html_to_text(response.text)
    snippet = text[:snippet_chars]
    if not snippet:
        logger.debug("No text extracted from %s", url)
        return None
    return FetchedPage(source=source.label, url=url, title=title or source.label, snippet=snippet)
