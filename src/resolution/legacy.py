# src/resolution/legacy.py — v2
"""v1 response shape, kept for clients that still request ``v=1``.

v1 has four flat role keys (no bareboatCharterer) and parties as
``{value, confidence, evidence}``. v1 has no status field, so nothing
unverified is shown: ``ai_inferred_no_evidence`` answers become null,
strength="none" items are dropped, and candidates left without evidence
are omitted. Evidence sources are ``input`` (AIS static), ``external``
and ``ai`` (an AI citation that survived verification).
"""

from __future__ import annotations

import logging
from typing import Any

from shipparties.core.errors import SchemaViolation
from shipparties.core.models import EvidenceItem, PartiesResult, PartyCandidate

logger = logging.getLogger(__name__)

V1_ROLES = ("registeredOwner", "beneficialOwner", "operator", "manager")
V1_SOURCES: dict[str, str] = {"ais_static": "input", "external": "external", "ai": "ai"}
_V1_AI_STATUSES = {"not_requested", "skipped", "ok", "failed"}


def _v1_evidence(item: EvidenceItem) -> dict[str, Any]:
    out: dict[str, Any] = {"source": V1_SOURCES[item.source], "path": item.path}
    if item.note:
        out["note"] = item.note
    return out


def _v1_party(name: str, confidence: str, evidence: list[EvidenceItem]) -> dict[str, Any] | None:
    cited = [e for e in evidence if e.strength != "none"]
    if not cited:
        return None
    return {
        "value": name,
        "confidence": confidence,
        "evidence": [_v1_evidence(e) for e in cited],
    }


def _v1_candidates(cands: list[PartyCandidate]) -> list[dict[str, Any]]:
    out = []
    for c in cands:
        party = _v1_party(c.name, c.confidence, c.evidence)
        if party is not None:
            out.append(party)
    return out


def to_v1_response(result: PartiesResult) -> dict[str, Any]:
    """Project a PartiesResult onto the v1 payload.

    Raises:
        SchemaViolation: The projection does not pass validate_v1_response().
    """
    identity = result.identity
    payload: dict[str, Any] = {
        "query": {
            k: v
            for k, v in (
                ("imo", identity.imo),
                ("mmsi", identity.mmsi),
                ("name", identity.name),
                ("callsign", identity.callsign),
            )
            if v is not None
        },
        "ai_status": result.ai_status,
        "candidates": {},
    }
    for role in V1_ROLES:
        answer = result.parties.get(role)
        payload[role] = None
        if answer is not None and answer.status == "confirmed":
            payload[role] = _v1_party(answer.name, answer.confidence, answer.evidence)
        elif answer is not None:
            logger.debug("v1: hiding unverified %s answer %r", role, answer.name)
        cands = _v1_candidates(result.candidates.get(role, []))
        if cands:
            payload["candidates"][role] = cands

    if not validate_v1_response(payload):
        raise SchemaViolation(["v1 response failed its shape check"])
    return payload


def validate_v1_response(payload: Any) -> bool:
    """Structural check of a v1 payload, parties and candidates alike."""
    if not isinstance(payload, dict):
        return False

    def check_party(party: Any) -> bool:
        if not isinstance(party, dict) or not isinstance(party.get("value"), str):
            return False
        if party.get("confidence") not in ("low", "medium", "high"):
            return False
        evidence = party.get("evidence")
        if not isinstance(evidence, list) or not evidence:
            return False
        return all(
            isinstance(e, dict)
            and e.get("source") in V1_SOURCES.values()
            and isinstance(e.get("path"), str)
            and e["path"]
            for e in evidence
        )

    ai_status = payload.get("ai_status")
    if ai_status is not None and ai_status not in _V1_AI_STATUSES:
        return False
    if not all(payload.get(role) is None or check_party(payload[role]) for role in V1_ROLES):
        return False
    candidates = payload.get("candidates", {})
    if not isinstance(candidates, dict):
        return False
    return all(
        isinstance(cands, list) and all(check_party(c) for c in cands)
        for cands in candidates.values()
    )
