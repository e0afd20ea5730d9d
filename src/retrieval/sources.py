# src/retrieval/sources.py — v1
"""Allow-listed public sources and search-term building.

Each source knows how to turn a search term into result-page URLs. Only
sources whose domain is on the configured allowlist are ever contacted.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote, urlparse

from shipparties.core.models import ShipIdentity


@dataclass(frozen=True)
class PublicSource:
    """One allow-listable public website."""

    id: str
    label: str
    domain: str
    url_template: str
    needs_imo: bool = False

    def build_url(self, term: str) -> str:
        return self.url_template.format(term=quote(term.strip(), safe=""))


SOURCES: tuple[PublicSource, ...] = (
    PublicSource(
        "equasis", "Equasis", "equasis.org",
        "https://www.equasis.org/EquasisWeb/restricted/Search?fs=Search&P_IMO={term}",
        needs_imo=True,
    ),
    PublicSource(
        "vesselfinder", "VesselFinder", "vesselfinder.com",
        "https://www.vesselfinder.com/vessels?name={term}",
    ),
    PublicSource(
        "marinetraffic", "MarineTraffic", "marinetraffic.com",
        "https://www.marinetraffic.com/en/global_search/search?term={term}",
    ),
    PublicSource(
        "fleetmon", "FleetMon", "fleetmon.com",
        "https://www.fleetmon.com/vessels/?name={term}",
    ),
    PublicSource(
        "shipspotting", "Shipspotting", "shipspotting.com",
        "https://www.shipspotting.com/photos/search?keywords={term}",
    ),
    PublicSource(
        "wikipedia", "Wikipedia", "wikipedia.org",
        "https://en.wikipedia.org/wiki/Special:Search?search={term}",
    ),
    PublicSource(
        "wikidata", "Wikidata", "wikidata.org",
        "https://www.wikidata.org/w/index.php?search={term}",
    ),
)


def is_allowed_url(url: str, allowlist: list[str]) -> bool:
    """True when url's host is an allow-listed domain or one of its subdomains."""
    try:
        host = (urlparse(url).hostname or "").lower().removeprefix("www.")
    except ValueError:
        return False
    return bool(host) and any(host == d or host.endswith(f".{d}") for d in allowlist)


def allowed_sources(
    allowlist: list[str],
    sources: tuple[PublicSource, ...] = SOURCES,
) -> list[PublicSource]:
    return [s for s in sources if s.domain in allowlist]


def build_queries(identity: ShipIdentity, max_queries: int = 10) -> list[str]:
    """Search terms for an identity, most specific first, deduplicated."""
    queries: list[str] = []
    base = " ".join(
        p for p in (identity.imo, identity.name, identity.callsign, identity.mmsi, identity.flag) if p
    )
    if base:
        queries.append(base)
    for a, b in (
        (identity.imo, identity.name),
        (identity.name, identity.callsign),
        (identity.name, identity.flag),
        (identity.mmsi, identity.name),
    ):
        if a and b:
            queries.append(f"{a} {b}")
    for anchor in (identity.imo, identity.name):
        if anchor:
            queries.extend(
                f"{anchor} {suffix}"
                for suffix in ("registered owner", "operator", "manager", "beneficial owner")
            )
    for single in (identity.mmsi, identity.imo, identity.name, identity.callsign):
        if single:
            queries.append(single)
    return list(dict.fromkeys(queries))[:max_queries]


def urls_for_source(
    source: PublicSource,
    identity: ShipIdentity,
    queries: list[str],
    max_per_source: int,
) -> list[str]:
    """Up to max_per_source distinct URLs for one source."""
    if source.needs_imo:
        terms: list[str] = [identity.imo] if identity.imo else []
    else:
        # Direct identifiers beat free-text queries on listing sites.
        terms = [t for t in (identity.mmsi, identity.imo) if t] + queries
    urls = list(dict.fromkeys(source.build_url(t) for t in terms if t))
    return urls[:max_per_source]

