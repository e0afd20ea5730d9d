# tests/unit/retrieval/test_unit_sources.py — v1
"""Tests for retrieval/sources.py — allowlist and query building."""

from __future__ import annotations

import pytest

from shipparties.core.models import ShipIdentity
from shipparties.retrieval.sources import (
    SOURCES,
    allowed_sources,
    build_queries,
    is_allowed_url,
    urls_for_source,
)

ALLOW = ["vesselfinder.com", "equasis.org"]


def _source(source_id: str):
    return next(s for s in SOURCES if s.id == source_id)


class TestIsAllowedUrl:
    @pytest.mark.parametrize("url,expected", [
        ("https://www.vesselfinder.com/vessels?name=X", True),
        ("https://api.vesselfinder.com/x", True),
        ("https://equasis.org/", True),
        ("https://evilvesselfinder.com/", False),
        ("https://www.marinetraffic.com/", False),
        ("", False),
    ])
    def test_hosts(self, url, expected):
        assert is_allowed_url(url, ALLOW) is expected


class TestAllowedSources:
    def test_filters_by_domain(self):
        assert [s.id for s in allowed_sources(ALLOW)] == ["equasis", "vesselfinder"]

    def test_empty_allowlist(self):
        assert allowed_sources([]) == []


class TestBuildQueries:
    def test_most_specific_first(self):
        queries = build_queries(ShipIdentity(imo="9319466", name="EVER GIVEN"))
        assert queries[0] == "9319466 EVER GIVEN"
        assert "9319466 registered owner" in queries

    def test_deduplicated_and_capped(self):
        queries = build_queries(ShipIdentity(imo="9319466", name="EVER GIVEN", callsign="H3RC"), 4)
        assert len(queries) == 4
        assert len(set(queries)) == 4

    def test_no_identity(self):
        assert build_queries(ShipIdentity()) == []

    def test_single_identifier(self):
        assert build_queries(ShipIdentity(mmsi="353136000")) == ["353136000"]


class TestUrlsForSource:
    def test_imo_only_source(self):
        identity = ShipIdentity(imo="9319466", name="EVER GIVEN")
        [url] = urls_for_source(_source("equasis"), identity, ["EVER GIVEN"], 3)
        assert url.endswith("P_IMO=9319466")

    def test_imo_only_source_without_imo(self):
        identity = ShipIdentity(name="EVER GIVEN")
        assert urls_for_source(_source("equasis"), identity, ["EVER GIVEN"], 3) == []

    def test_identifier_first_and_encoded(self):
        identity = ShipIdentity(mmsi="353136000", name="EVER GIVEN")
        urls = urls_for_source(_source("vesselfinder"), identity, build_queries(identity), 2)
        assert urls[0].endswith("name=353136000")
        assert urls[1].endswith("name=EVER%20GIVEN%20353136000")
