# src/resolution/assembler.py — v1
"""Response Assembler & Validator.

Packages per-role resolutions into a PartiesResult and checks the output
contract before anything is returned. A violation raises SchemaViolation:
it is a defect to be caught in tests, never served to a client.
"""

from __future__ import annotations

import logging

from shipparties.core.errors import SchemaViolation
from shipparties.core.models import (
    ROLES,
    AiExtraction,
    AiStatus,
    Contact,
    PartiesResult,
    PartyAnswer,
    PartyCandidate,
    RetrievalResult,
    Role,
    ShipIdentity,
)
from shipparties.resolution.resolver import RoleResolution

logger = logging.getLogger(__name__)


def extract_contacts(extraction: AiExtraction | None) -> list[Contact]:
    """Keep contacts backed exclusively by strong (official-domain) evidence."""
    if extraction is None:
        return []
    kept = [
        c for c in extraction.contacts
        if c.evidence and all(e.strength == "strong" for e in c.evidence)
    ]
    dropped = len(extraction.contacts) - len(kept)
    if dropped:
        logger.info("Dropped %d contact(s) without strong official evidence", dropped)
    return kept


def assemble_result(
    identity: ShipIdentity,
    resolutions: dict[Role, RoleResolution],
    retrieval: RetrievalResult,
    ai_status: AiStatus,
    contacts: list[Contact] | None = None,
    notes: list[str] | None = None,
    errors: list[str] | None = None,
) -> PartiesResult:
    """Build and validate the final result."""
    parties: dict[Role, PartyAnswer | None] = {}
    candidates: dict[Role, list[PartyCandidate]] = {}
    for role in ROLES:
        res = resolutions.get(role) or RoleResolution()
        parties[role] = res.answer
        if res.is_conflicting:
            candidates[role] = list(res.candidates)

    result = PartiesResult(
        identity=identity,
        parties=parties,
        candidates=candidates,
        public_evidence=retrieval,
        contacts=list(contacts or []),
        ai_status=ai_status,
        retrieval_status=retrieval.status,
        notes=list(notes or []),
        errors=list(errors or []),
    )
    validate_result(result)
    return result


def collect_violations(result: PartiesResult) -> list[str]:
    """List every output-contract violation in result (empty when valid)."""
    violations: list[str] = []

    if set(result.parties) != set(ROLES):
        violations.append(f"parties must cover exactly {list(ROLES)}")

    for role, answer in result.parties.items():
        if answer is None:
            continue
        if not answer.evidence:
            violations.append(f"{role}: answer has no evidence")
        all_none = all(e.strength == "none" for e in answer.evidence)
        if answer.status == "ai_inferred_no_evidence" and not all_none:
            violations.append(f"{role}: ai_inferred_no_evidence with verifiable evidence")
        if answer.status == "confirmed" and all_none:
            violations.append(f"{role}: confirmed without verifiable evidence")

    for role, cands in result.candidates.items():
        if len(cands) < 2:
            violations.append(f"{role}: candidates present with fewer than 2 entries")
        if result.parties.get(role) is not None:
            violations.append(f"{role}: answer confirmed while candidates conflict")
        scores = [c.score for c in cands]
        if scores != sorted(scores, reverse=True):
            violations.append(f"{role}: candidates not sorted by score")
        for c in cands:
            if not c.evidence:
                violations.append(f"{role}: candidate {c.name!r} has no evidence")

    for contact in result.contacts:
        if not contact.evidence or any(e.strength != "strong" for e in contact.evidence):
            violations.append(f"contact {contact.company!r} lacks strong evidence")

    if result.retrieval_status != result.public_evidence.status:
        violations.append("retrieval_status disagrees with public_evidence.status")

    return violations


def validate_result(result: PartiesResult) -> bool:
    """Return True for a valid result.

    Raises:
        SchemaViolation: listing every violated invariant.
    """
    violations = collect_violations(result)
    if violations:
        logger.error("Parties result failed validation: %s", violations)
        raise SchemaViolation(violations)
    return True
