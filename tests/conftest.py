# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides sample identities and requests, retrieval results, mock LLM
clients and settings. No external dependencies — all I/O is mocked.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from shipparties.config.settings import Settings
from shipparties.core.models import (
    PartiesRequest,
    PublicSnippet,
    RetrievalResult,
    ShipIdentity,
)
from shipparties.llm.models import LLMResponse
from shipparties.retrieval.memory_store import MemoryCacheStore


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_identity() -> ShipIdentity:
    """Minimal valid ShipIdentity."""
    return ShipIdentity(imo="9319466", name="EVER GIVEN", mmsi="353136000", callsign="H3RC")


@pytest.fixture
def alpha_request(sample_identity: ShipIdentity) -> PartiesRequest:
    """Single AIS-static owner claim."""
    return PartiesRequest(
        identity=sample_identity,
        ais_static={"registeredOwner": "Alpha Shipping"},
        mode="strict",
    )


@pytest.fixture
def conflict_request(sample_identity: ShipIdentity) -> PartiesRequest:
    """AIS-static and external sources disagree on the registered owner."""
    return PartiesRequest(
        identity=sample_identity,
        ais_static={"registeredOwner": "Alpha Shipping"},
        external=[{"role": "registeredOwner", "value": "Beta Shipping", "confidence": "high"}],
        mode="strict",
    )


@pytest.fixture
def public_retrieval() -> RetrievalResult:
    """Two snippets: one official registry page, one listing site."""
    return RetrievalResult(
        status="ok",
        snippets=[
            PublicSnippet(
                id="s0",
                source="Equasis",
                url="https://www.equasis.org/EquasisWeb/restricted/Search?P_IMO=9319466",
                title="Equasis",
                snippet="EVER GIVEN IMO 9319466 registered owner Higaki Sangyo Kaisha",
                retrieved_at=1_700_000_000.0,
            ),
            PublicSnippet(
                id="s1",
                source="VesselFinder",
                url="https://www.vesselfinder.com/vessels?name=EVER%20GIVEN",
                title="EVER GIVEN",
                snippet="EVER GIVEN container ship, manager Bernhard Schulte Shipmanagement",
                retrieved_at=1_700_000_000.0,
            ),
        ],
    )


@pytest.fixture
def ai_payload() -> dict:
    """Raw AI answer citing the official snippet for the registered owner."""
    return {
        "parties": {
            "registeredOwner": {
                "name": "Higaki Sangyo Kaisha",
                "confidence": "high",
                "evidence": [{"path": "public_evidence.snippets[s0]", "strength": "strong"}],
            },
            "operator": {"name": "Evergreen Marine", "confidence": "high", "evidence": []},
        },
        "candidates": {},
        "contacts": [],
    }


# === FIXTURES: Settings & cache ===


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from any .env file."""
    return Settings(
        _env_file=None,
        cache_root=tmp_path / "cache",
        ai_timeout_s=1.0,
    )


@pytest.fixture
def memory_store() -> MemoryCacheStore:
    return MemoryCacheStore()


# === FIXTURES: Mock LLM ===


@pytest.fixture
def mock_llm_response(ai_payload: dict) -> LLMResponse:
    """Standard mock LLM response carrying ai_payload."""
    return LLMResponse(
        content=json.dumps(ai_payload),
        input_tokens=100,
        output_tokens=50,
        model="gemini-2.0-flash",
        provider="google",
        latency_ms=500,
    )


@pytest.fixture
def mock_llm_client(mock_llm_response: LLMResponse) -> AsyncMock:
    """Mock BaseLLMClient with default response."""
    client = AsyncMock()
    client.complete = AsyncMock(return_value=mock_llm_response)
    client.provider_name = "mock"
    client.model_name = "mock-model"
    return client


@pytest.fixture
def tmp_cache_dir(tmp_path: Path) -> Path:
    """Temporary cache directory."""
    cache = tmp_path / "cache"
    cache.mkdir()
    return cache
