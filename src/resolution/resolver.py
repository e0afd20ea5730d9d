# src/resolution/resolver.py — v1
"""Conflict Resolver — decide per role between answer, conflict, or nothing.

  - 0 groups  -> no answer, no candidates.
  - 1 group   -> PartyAnswer ("confirmed", or "ai_inferred_no_evidence" when
                 every evidence item has strength "none").
  - 2+ groups -> no answer; candidates sorted by score desc, stable on
                 first-seen order. One side of a conflict is never confirmed.

Pure function, no I/O. Deterministic AND AI-merged pools go through here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from shipparties.core.models import (
    ROLES,
    PartyAnswer,
    PartyCandidate,
    PartyStatus,
    Role,
)
from shipparties.resolution.pool import CandidatePool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleResolution:
    """Outcome of resolving one role's candidate pool."""

    answer: PartyAnswer | None = None
    candidates: list[PartyCandidate] = field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return self.answer is not None

    @property
    def is_conflicting(self) -> bool:
        return len(self.candidates) >= 2


def answer_status(candidate: PartyCandidate) -> PartyStatus:
    """Status for a sole candidate; unverified when nothing backs it."""
    if all(e.strength == "none" for e in candidate.evidence):
        return "ai_inferred_no_evidence"
    return "confirmed"


def resolve_role(candidates: list[PartyCandidate]) -> RoleResolution:
    """Resolve one role's pool."""
    if not candidates:
        return RoleResolution()

    if len(candidates) == 1:
        only = candidates[0]
        return RoleResolution(
            answer=PartyAnswer(
                name=only.name,
                status=answer_status(only),
                confidence=only.confidence,
                evidence=list(only.evidence),
            )
        )

    # sorted() is stable, so equal scores keep first-seen order.
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
    return RoleResolution(candidates=ranked)


def resolve_pool(pool: CandidatePool) -> dict[Role, RoleResolution]:
    """Resolve every role independently."""
    resolutions = {role: resolve_role(pool.get(role, [])) for role in ROLES}
    conflicts = [r for r, res in resolutions.items() if res.is_conflicting]
    if conflicts:
        logger.info("Unresolved conflicts for roles: %s", ", ".join(conflicts))
    return resolutions
