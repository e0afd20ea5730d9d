# tests/unit/resolution/test_unit_engine.py — v1
"""Tests for resolution/engine.py — end-to-end deterministic and AI paths."""

from __future__ import annotations

from shipparties.core.models import ROLES, PartiesRequest, RetrievalResult, ShipIdentity
from shipparties.resolution.ai_gate import NO_EVIDENCE_NOTE, AiOutcome
from shipparties.resolution.assembler import validate_result
from shipparties.resolution.engine import build_parties_result, deterministic_pass, plan_for

IDENTITY = ShipIdentity(imo="9319466", name="EVER GIVEN")


class TestScenarios:
    def test_single_source_confirms(self, alpha_request):
        result = build_parties_result(alpha_request)
        owner = result.parties["registeredOwner"]
        assert owner.name == "Alpha Shipping"
        assert owner.status == "confirmed"
        assert owner.confidence == "medium"
        assert len(owner.evidence) == 1
        assert result.candidates == {}

    def test_disagreement_leaves_role_open(self, conflict_request):
        result = build_parties_result(conflict_request)
        assert result.parties["registeredOwner"] is None
        cands = result.candidates["registeredOwner"]
        assert len(cands) == 2
        assert cands[0].name == "Beta Shipping"
        assert cands[0].confidence == "high"

    def test_agreement_merges_evidence(self):
        request = PartiesRequest(
            identity=IDENTITY,
            ais_static={"registeredOwner": "Alpha Shipping"},
            external=[{"role": "registeredOwner", "value": "Alpha Shipping", "confidence": "low"}],
            mode="strict",
        )
        owner = build_parties_result(request).parties["registeredOwner"]
        assert owner.name == "Alpha Shipping"
        assert owner.confidence == "medium"
        assert len(owner.evidence) == 2

    def test_empty_strict(self):
        result = build_parties_result(PartiesRequest(identity=IDENTITY, mode="strict"))
        assert all(result.parties[r] is None for r in ROLES)
        assert result.ai_status == "skipped"
        assert result.notes == ["AI skipped: strict mode"]


class TestDeterminism:
    def test_byte_identical(self, conflict_request, public_retrieval, ai_payload):
        outcome = AiOutcome(status="ok", payload=ai_payload)
        request = conflict_request.model_copy(update={"mode": "aggressive"})
        first = build_parties_result(request, public_retrieval, outcome)
        second = build_parties_result(request, public_retrieval, outcome)
        assert first.model_dump_json() == second.model_dump_json()

    def test_result_validates(self, conflict_request):
        assert validate_result(build_parties_result(conflict_request)) is True


class TestDeterministicPass:
    def test_next_order_after_claims(self, conflict_request):
        first = deterministic_pass(conflict_request)
        assert first.next_order == 2

    def test_malformed_evidence_recorded(self):
        request = PartiesRequest(identity=IDENTITY, external=[{"role": "operator"}], mode="strict")
        result = build_parties_result(request)
        assert len(result.errors) == 1
        assert result.errors[0].startswith("external[0]:")

    def test_plan_for(self, alpha_request):
        plan = plan_for(alpha_request, RetrievalResult(), deterministic_pass(alpha_request))
        assert plan.ai_status == "skipped"


class TestAiPaths:
    def test_no_evidence_guess_demoted(self):
        request = PartiesRequest(identity=IDENTITY, mode="aggressive")
        outcome = AiOutcome(status="ok", payload={
            "parties": {"operator": {"name": "Evergreen Marine", "confidence": "high", "evidence": []}},
        })
        result = build_parties_result(request, RetrievalResult(), outcome)
        operator = result.parties["operator"]
        assert result.ai_status == "ok"
        assert operator.status == "ai_inferred_no_evidence"
        assert operator.confidence == "low"
        [item] = operator.evidence
        assert item.source == "ai"
        assert item.path == "ai.parties.operator"
        assert item.strength == "none"
        assert item.note == NO_EVIDENCE_NOTE

    def test_authority_citation_confirms(self, public_retrieval, ai_payload):
        request = PartiesRequest(identity=IDENTITY, mode="aggressive")
        result = build_parties_result(request, public_retrieval, AiOutcome(status="ok", payload=ai_payload))
        owner = result.parties["registeredOwner"]
        assert owner.status == "confirmed"
        assert owner.confidence == "high"
        assert owner.evidence[0].strength == "strong"
        assert result.retrieval_status == "ok"
        assert len(result.public_evidence.snippets) == 2

    def test_ai_reranks_but_never_settles_a_conflict(self, conflict_request):
        request = conflict_request.model_copy(update={"mode": "aggressive"})
        outcome = AiOutcome(status="ok", payload={"parties": {"registeredOwner": {
            "name": "Alpha Shipping", "confidence": "high",
            "evidence": [{"path": "ais_static.registeredOwner"}],
        }}})
        result = build_parties_result(request, RetrievalResult(), outcome)
        assert result.parties["registeredOwner"] is None
        cands = result.candidates["registeredOwner"]
        assert [c.name for c in cands] == ["Alpha Shipping", "Beta Shipping"]
        assert len(cands[0].evidence) == 2

    def test_unrelated_ais_field_cannot_confirm_a_guess(self, alpha_request):
        request = alpha_request.model_copy(update={"mode": "aggressive"})
        outcome = AiOutcome(status="ok", payload={"parties": {"operator": {
            "name": "Zeta Fabricated Ltd", "confidence": "high",
            "evidence": [{"path": "ais_static.registeredOwner", "strength": "strong"}],
        }}})
        result = build_parties_result(request, RetrievalResult(), outcome)
        operator = result.parties["operator"]
        assert operator.status == "ai_inferred_no_evidence"
        assert operator.confidence == "low"
        assert [e.path for e in operator.evidence] == ["ai.parties.operator"]

    def test_uncited_guess_cannot_tip_a_tie(self):
        request = PartiesRequest(
            identity=IDENTITY,
            ais_static={"registeredOwner": "Alpha Shipping"},
            external=[{"role": "registeredOwner", "value": "Beta Shipping", "strength": "medium"}],
            mode="aggressive",
        )
        before = build_parties_result(request, RetrievalResult())
        assert [c.name for c in before.candidates["registeredOwner"]] == ["Alpha Shipping", "Beta Shipping"]

        outcome = AiOutcome(status="ok", payload={"parties": {"registeredOwner": {
            "name": "Beta Shipping", "confidence": "high", "evidence": [],
        }}})
        after = build_parties_result(request, RetrievalResult(), outcome)
        cands = after.candidates["registeredOwner"]
        assert [c.name for c in cands] == ["Alpha Shipping", "Beta Shipping"]
        assert cands[0].score == cands[1].score
        assert after.parties["registeredOwner"] is None

    def test_confirmed_roles_are_final(self, alpha_request):
        request = alpha_request.model_copy(update={"mode": "aggressive"})
        outcome = AiOutcome(status="ok", payload={"parties": {
            "registeredOwner": {"name": "Someone Else", "confidence": "high"},
        }})
        result = build_parties_result(request, RetrievalResult(), outcome)
        assert result.parties["registeredOwner"].name == "Alpha Shipping"
        assert "registeredOwner" not in result.candidates

    def test_failed_ai_keeps_deterministic(self, alpha_request):
        request = alpha_request.model_copy(update={"mode": "aggressive"})
        outcome = AiOutcome(status="failed", errors=["ai: timed out after 1.0s"])
        result = build_parties_result(request, RetrievalResult(), outcome)
        assert result.ai_status == "failed"
        assert result.parties["registeredOwner"].name == "Alpha Shipping"
        assert "AI unavailable; showing deterministic evidence only" in result.notes
        assert "ai: timed out after 1.0s" in result.errors

    def test_malformed_payload_is_failure(self, alpha_request):
        request = alpha_request.model_copy(update={"mode": "aggressive"})
        result = build_parties_result(request, RetrievalResult(), AiOutcome(status="ok", payload="garbage"))
        assert result.ai_status == "failed"
        assert "ai: AI payload is not a JSON object" in result.errors

    def test_requested_without_collaborator(self):
        result = build_parties_result(PartiesRequest(identity=IDENTITY, mode="aggressive"))
        assert result.ai_status == "not_requested"
        assert result.notes[0].startswith("AI not requested")

    def test_balanced_without_public_evidence(self):
        result = build_parties_result(PartiesRequest(identity=IDENTITY, mode="balanced"))
        assert result.ai_status == "not_requested"
        assert result.notes == ["AI not requested: no public evidence to ground an AI request"]

    def test_outcome_notes_carried(self, public_retrieval, ai_payload):
        request = PartiesRequest(identity=IDENTITY, mode="aggressive")
        outcome = AiOutcome(status="ok", payload=ai_payload, notes=["reused cached AI analysis"])
        result = build_parties_result(request, public_retrieval, outcome)
        assert "reused cached AI analysis" in result.notes
