# src/resolution/pool.py — v1
"""Candidate Pool Builder — groups normalized claims per role.

Claims with the same normalized key collapse into one PartyCandidate:
  - confidence = max member confidence (never lower than any constituent),
  - evidence   = member evidence in first-seen order, exact duplicates dropped,
  - score      = (confidence tier, max strength tier, count of evidence
                 stronger than "none") packed into one integer so it sorts
                 lexicographically. A strength="none" item can never move a
                 candidate up.

Pools are plain dicts rebuilt on every call; nothing is mutated in place.
"""

from __future__ import annotations

import logging

from shipparties.core.models import (
    CONFIDENCE_RANK,
    ROLES,
    STRENGTH_RANK,
    Confidence,
    EvidenceItem,
    NormalizedClaim,
    PartyCandidate,
    Role,
    max_confidence,
    max_strength,
)

logger = logging.getLogger(__name__)

CandidatePool = dict[Role, list[PartyCandidate]]

_CONFIDENCE_WEIGHT = 10_000
_STRENGTH_WEIGHT = 1_000
_MAX_COUNTED_EVIDENCE = 999


def score_candidate(confidence: Confidence, evidence: list[EvidenceItem]) -> int:
    """Ranking value: confidence tier, then strength tier, then cited evidence count."""
    strength = max_strength([e.strength for e in evidence])
    cited = sum(1 for e in evidence if e.strength != "none")
    return (
        CONFIDENCE_RANK[confidence] * _CONFIDENCE_WEIGHT
        + STRENGTH_RANK[strength] * _STRENGTH_WEIGHT
        + min(cited, _MAX_COUNTED_EVIDENCE)
    )


def empty_pool() -> CandidatePool:
    return {role: [] for role in ROLES}


def build_pool(claims: list[NormalizedClaim]) -> CandidatePool:
    """Group claims per role by normalized key, in first-seen order."""
    return add_claims(empty_pool(), claims)


def add_claims(pool: CandidatePool, claims: list[NormalizedClaim]) -> CandidatePool:
    """Return a new pool with claims folded into the existing groups.

    Existing candidates keep their position; new keys append after them.
    """
    grouped: dict[Role, dict[str, PartyCandidate]] = {
        role: {c.normalized_key: c for c in pool.get(role, [])} for role in ROLES
    }

    for claim in sorted(claims, key=lambda c: c.order):
        groups = grouped[claim.role]
        existing = groups.get(claim.normalized_key)
        if existing is None:
            groups[claim.normalized_key] = PartyCandidate(
                name=claim.name,
                normalized_key=claim.normalized_key,
                confidence=claim.confidence,
                evidence=[claim.evidence],
                score=score_candidate(claim.confidence, [claim.evidence]),
            )
            continue
        groups[claim.normalized_key] = _merge(existing, claim)

    result: CandidatePool = {role: list(grouped[role].values()) for role in ROLES}
    logger.debug(
        "Candidate pool: %s",
        {role: len(cands) for role, cands in result.items() if cands},
    )
    return result


def _merge(candidate: PartyCandidate, claim: NormalizedClaim) -> PartyCandidate:
    evidence = list(candidate.evidence)
    seen = {e.dedup_key for e in evidence}
    if claim.evidence.dedup_key not in seen:
        evidence.append(claim.evidence)
    confidence = max_confidence([candidate.confidence, claim.confidence])
    return PartyCandidate(
        name=candidate.name,
        normalized_key=candidate.normalized_key,
        confidence=confidence,
        evidence=evidence,
        score=score_candidate(confidence, evidence),
    )


def roles_needing_ai(pool: CandidatePool) -> list[Role]:
    """Roles with no deterministic candidate at all."""
    return [role for role in ROLES if not pool.get(role)]


# camelCase alias, matching the role names in the JSON payloads.
rolesNeedingAi = roles_needing_ai  # noqa: N816
