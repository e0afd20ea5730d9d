# tests/unit/resolution/test_unit_ai_gate.py — v1
"""Tests for resolution/ai_gate.py — gate policy, sanitizing, merging."""

from __future__ import annotations

import pytest

from shipparties.core.errors import AiInferenceError
from shipparties.core.models import ROLES, AiExtraction, AiPartyGuess, RetrievalResult
from shipparties.resolution.ai_gate import (
    NO_EVIDENCE_NOTE,
    RoleState,
    classify_roles,
    guesses_to_claims,
    is_authority_url,
    merge_ai_extraction,
    plan_ai_request,
    sanitize_ai_payload,
)
from shipparties.resolution.normalizer import normalize_claims
from shipparties.resolution.pool import build_pool
from shipparties.resolution.resolver import resolve_pool

AUTHORITIES = ["equasis.org", "imo.org"]


def _pool(ais_static=None, external=None):
    pool = build_pool(normalize_claims(ais_static, external).claims)
    return pool, resolve_pool(pool)


@pytest.fixture
def mixed_pool():
    """operator resolved, registeredOwner conflicting, the rest empty."""
    return _pool(
        {"registeredOwner": "Alpha Shipping", "operator": "Gamma Lines"},
        [{"role": "registeredOwner", "value": "Beta Shipping", "confidence": "high"}],
    )


# === GATE ===


class TestClassifyRoles:
    def test_states(self, mixed_pool):
        _, resolutions = mixed_pool
        states = classify_roles(resolutions)
        assert states["operator"] is RoleState.RESOLVED
        assert states["registeredOwner"] is RoleState.CONFLICTING
        assert states["manager"] is RoleState.EMPTY


class TestPlanAiRequest:
    @pytest.mark.parametrize("retrieval_status", ["ok", "empty"])
    def test_strict_never_asks(self, mixed_pool, retrieval_status):
        pool, resolutions = mixed_pool
        plan = plan_ai_request("strict", retrieval_status, pool, resolutions)
        assert not plan.requested
        assert plan.ai_status == "skipped"

    def test_balanced_without_public_evidence(self, mixed_pool):
        pool, resolutions = mixed_pool
        plan = plan_ai_request("balanced", "empty", pool, resolutions)
        assert not plan.requested
        assert plan.ai_status == "not_requested"
        assert plan.reason

    def test_balanced_asks_only_empty_roles(self, mixed_pool):
        pool, resolutions = mixed_pool
        plan = plan_ai_request("balanced", "ok", pool, resolutions)
        assert plan.roles == ["beneficialOwner", "manager", "bareboatCharterer"]

    @pytest.mark.parametrize("retrieval_status", ["ok", "empty"])
    def test_aggressive_asks_empty_and_conflicting(self, mixed_pool, retrieval_status):
        pool, resolutions = mixed_pool
        plan = plan_ai_request("aggressive", retrieval_status, pool, resolutions)
        assert plan.roles == ["registeredOwner", "beneficialOwner", "manager", "bareboatCharterer"]
        assert "operator" not in plan.roles
        assert plan.states["registeredOwner"] is RoleState.AWAITING_AI
        assert plan.states["operator"] is RoleState.RESOLVED

    def test_aggressive_everything_settled(self):
        pool, resolutions = _pool({
            "registeredOwner": "A", "beneficialOwner": "B", "operator": "C",
            "manager": "D", "bareboatCharterer": "E",
        })
        plan = plan_ai_request("aggressive", "ok", pool, resolutions)
        assert not plan.requested
        assert plan.ai_status == "not_requested"


# === SANITIZING ===


class TestSanitizeAiPayload:
    def test_authority_snippet_becomes_strong(self, public_retrieval):
        extraction = sanitize_ai_payload(
            {"parties": {"registeredOwner": {
                "name": "Higaki Sangyo Kaisha", "confidence": "high",
                "evidence": [{"path": "public_evidence.snippets[s0]", "strength": "weak"}],
            }}},
            public_retrieval, {}, AUTHORITIES,
        )
        [item] = extraction.parties["registeredOwner"].evidence
        assert item.source == "ai"
        assert item.strength == "strong"

    def test_non_authority_snippet_capped_weak(self, public_retrieval):
        extraction = sanitize_ai_payload(
            {"parties": {"manager": {
                "name": "Bernhard Schulte", "confidence": "medium",
                "evidence": [{"path": "public_evidence.snippets[s1]", "strength": "strong"}],
            }}},
            public_retrieval, {}, AUTHORITIES,
        )
        assert extraction.parties["manager"].evidence[0].strength == "weak"

    def test_unverifiable_citations_dropped(self, public_retrieval):
        extraction = sanitize_ai_payload(
            {"parties": {"operator": {
                "name": "Evergreen", "confidence": "high",
                "evidence": [
                    {"path": "public_evidence.snippets[s9]", "strength": "strong"},
                    {"path": "https://example.com/made-up", "strength": "strong"},
                    "not-an-object",
                ],
            }}},
            public_retrieval, {}, AUTHORITIES,
        )
        assert extraction.parties["operator"].evidence == []

    def test_known_deterministic_path_kept(self):
        extraction = sanitize_ai_payload(
            {"parties": {"operator": {
                "name": "Gamma Lines",
                "evidence": [{"path": "ais_static.operator", "strength": "strong"}],
            }}},
            RetrievalResult(), _pool({"operator": "Gamma Lines"})[0], AUTHORITIES,
        )
        guess = extraction.parties["operator"]
        assert guess.confidence == "low"
        assert guess.evidence[0].strength == "weak"

    def test_locator_of_another_role_dropped(self):
        pool, _ = _pool({"registeredOwner": "Alpha Shipping"})
        extraction = sanitize_ai_payload(
            {"parties": {"operator": {
                "name": "Alpha Shipping", "confidence": "high",
                "evidence": [{"path": "ais_static.registeredOwner"}],
            }}},
            RetrievalResult(), pool, AUTHORITIES,
        )
        assert extraction.parties["operator"].evidence == []

    def test_locator_of_another_name_dropped(self):
        pool, _ = _pool(
            {"registeredOwner": "Alpha Shipping"},
            [{"role": "registeredOwner", "value": "Beta Shipping"}],
        )
        extraction = sanitize_ai_payload(
            {"candidates": {"registeredOwner": [
                {"name": "Zeta Fabricated Ltd", "evidence": [{"path": "ais_static.registeredOwner"}]},
                {"name": "beta shipping.", "evidence": [{"path": "external[0]"}]},
            ]}},
            RetrievalResult(), pool, AUTHORITIES,
        )
        zeta, beta = extraction.candidates["registeredOwner"]
        assert zeta.evidence == []
        assert [e.path for e in beta.evidence] == ["external[0]"]

    def test_invalid_guesses_skipped(self):
        extraction = sanitize_ai_payload(
            {"parties": {"operator": {"name": "  "}, "manager": "Delta", "captain": {"name": "X"}}},
            RetrievalResult(), {}, AUTHORITIES,
        )
        assert extraction.parties == {}

    def test_value_key_accepted(self):
        extraction = sanitize_ai_payload(
            {"parties": {"manager": {"value": "Delta", "confidence": "certain"}}},
            RetrievalResult(), {}, AUTHORITIES,
        )
        assert extraction.parties["manager"].name == "Delta"
        assert extraction.parties["manager"].confidence == "low"

    def test_candidates_and_contacts(self, public_retrieval):
        extraction = sanitize_ai_payload(
            {
                "candidates": {"operator": [{"name": "Evergreen"}, {"name": ""}]},
                "contacts": [
                    {"company": "Higaki Sangyo", "type": "email", "value": "info@higaki.example",
                     "evidence": [{"path": "public_evidence.snippets[s0]"}]},
                    {"company": "No value"},
                ],
            },
            public_retrieval, {}, AUTHORITIES,
        )
        assert [g.name for g in extraction.candidates["operator"]] == ["Evergreen"]
        [contact] = extraction.contacts
        assert contact.evidence[0].strength == "strong"

    @pytest.mark.parametrize("payload", [None, [], "text", {"parties": []}, {"contacts": {}}])
    def test_wrong_shape_raises(self, payload):
        with pytest.raises(AiInferenceError):
            sanitize_ai_payload(payload, RetrievalResult(), {}, AUTHORITIES)


class TestIsAuthorityUrl:
    @pytest.mark.parametrize("url,expected", [
        ("https://www.equasis.org/EquasisWeb", True),
        ("https://gisis.imo.org/Public", True),
        ("https://imo.org", True),
        ("https://notequasis.org/x", False),
        ("https://www.vesselfinder.com/vessels", False),
        ("not a url", False),
    ])
    def test_domains(self, url, expected):
        assert is_authority_url(url, AUTHORITIES) is expected


# === MERGING ===


class TestGuessesToClaims:
    def test_no_evidence_demoted(self):
        extraction = AiExtraction(parties={"operator": AiPartyGuess(name="Evergreen", confidence="high")})
        claims, errors = guesses_to_claims(extraction, ["operator"], 10)
        assert errors == []
        [claim] = claims
        assert claim.confidence == "low"
        assert claim.order == 10
        assert claim.evidence.source == "ai"
        assert claim.evidence.path == "ai.parties.operator"
        assert claim.evidence.strength == "none"
        assert claim.evidence.note == NO_EVIDENCE_NOTE

    def test_alternate_paths_without_primary(self):
        extraction = AiExtraction(candidates={"manager": [AiPartyGuess(name="A"), AiPartyGuess(name="B")]})
        claims, _ = guesses_to_claims(extraction, ["manager"], 0)
        assert [c.evidence.path for c in claims] == ["ai.candidates.manager[0]", "ai.candidates.manager[1]"]

    def test_alternate_paths_after_primary(self):
        extraction = AiExtraction(
            parties={"manager": AiPartyGuess(name="A")},
            candidates={"manager": [AiPartyGuess(name="B")]},
        )
        claims, _ = guesses_to_claims(extraction, ["manager"], 0)
        assert [c.evidence.path for c in claims] == ["ai.parties.manager", "ai.candidates.manager[0]"]

    def test_nameless_guess_reported(self):
        extraction = AiExtraction(parties={"operator": AiPartyGuess(name="...")})
        claims, errors = guesses_to_claims(extraction, ["operator"], 0)
        assert claims == []
        assert errors[0].path == "ai.parties.operator"


class TestMergeAiExtraction:
    def test_unrequested_roles_ignored(self, mixed_pool):
        pool, _ = mixed_pool
        extraction = AiExtraction(parties={
            "operator": AiPartyGuess(name="Someone Else"),
            "manager": AiPartyGuess(name="Delta"),
        })
        merged, errors = merge_ai_extraction(pool, extraction, ["manager"], 100)
        assert errors == []
        assert [c.name for c in merged["operator"]] == ["Gamma Lines"]
        assert [c.name for c in merged["manager"]] == ["Delta"]
        assert set(merged) == set(ROLES)
