# src/resolution/engine.py — v1
"""Parties resolution engine — composes the five stages.

Runs:
  1. Evidence Normalizer   (normalizer.py)
  2. Candidate Pool Builder (pool.py)
  3. Conflict Resolver      (resolver.py)       — deterministic pass
  4. AI Gate & Merger       (ai_gate.py)        — optional AI fold-in
  5. Assembler & Validator  (assembler.py)

Everything here is synchronous and side-effect free. The async collaborators
(retrieval, AI) are awaited by api/facade.py, which hands their results in.
Identical inputs always produce byte-identical output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from shipparties.core.errors import AiInferenceError
from shipparties.core.models import (
    AiExtraction,
    AiStatus,
    PartiesRequest,
    PartiesResult,
    RetrievalResult,
    Role,
)
from shipparties.resolution.ai_gate import (
    DEFAULT_AUTHORITY_DOMAINS,
    AiOutcome,
    AiPlan,
    merge_ai_extraction,
    plan_ai_request,
    sanitize_ai_payload,
)
from shipparties.resolution.assembler import assemble_result, extract_contacts
from shipparties.resolution.normalizer import normalize_claims
from shipparties.resolution.pool import CandidatePool, build_pool
from shipparties.resolution.resolver import RoleResolution, resolve_pool

logger = logging.getLogger(__name__)


@dataclass
class DeterministicPass:
    """Pool and resolutions built from AIS-static and external evidence only."""

    pool: CandidatePool
    resolutions: dict[Role, RoleResolution]
    errors: list[str] = field(default_factory=list)
    next_order: int = 0


def deterministic_pass(request: PartiesRequest) -> DeterministicPass:
    """Normalize, pool and resolve the deterministic sources."""
    report = normalize_claims(request.ais_static, request.external)
    pool = build_pool(report.claims)
    resolutions = resolve_pool(pool)
    next_order = max((c.order for c in report.claims), default=-1) + 1
    return DeterministicPass(
        pool=pool,
        resolutions=resolutions,
        errors=report.error_messages,
        next_order=next_order,
    )


def plan_for(request: PartiesRequest, retrieval: RetrievalResult, first: DeterministicPass) -> AiPlan:
    """AI gate decision for a request after its deterministic pass."""
    return plan_ai_request(request.mode, retrieval.status, first.pool, first.resolutions)


def build_parties_result(
    request: PartiesRequest,
    retrieval: RetrievalResult | None = None,
    ai_outcome: AiOutcome | None = None,
    authority_domains: list[str] | None = None,
    first: DeterministicPass | None = None,
) -> PartiesResult:
    """Resolve every role for one ship and return the validated result.

    Args:
        request: Identity, evidence inputs and mode.
        retrieval: Public evidence gathered by the retrieval collaborator.
        ai_outcome: Result of the AI call, when the facade made one.
        authority_domains: Official registry domains (strong citations).
        first: Precomputed deterministic pass, to avoid recomputing it.

    Returns:
        PartiesResult that has passed validate_result().

    Raises:
        SchemaViolation: If an output invariant is violated (a defect).
    """
    retrieval = retrieval or RetrievalResult()
    domains = list(authority_domains or DEFAULT_AUTHORITY_DOMAINS)
    first = first or deterministic_pass(request)
    plan = plan_for(request, retrieval, first)

    notes: list[str] = []
    errors: list[str] = list(first.errors)
    resolutions = first.resolutions
    extraction: AiExtraction | None = None
    ai_status: AiStatus

    if not plan.requested:
        ai_status = plan.ai_status
        if plan.reason:
            notes.append(f"AI {ai_status.replace('_', ' ')}: {plan.reason}")
    elif ai_outcome is None:
        ai_status = "not_requested"
        notes.append(f"AI not requested: no AI collaborator for roles {', '.join(plan.roles)}")
    else:
        ai_status = ai_outcome.status
        notes.extend(ai_outcome.notes)
        errors.extend(ai_outcome.errors)
        if ai_outcome.status == "ok":
            try:
                extraction = ai_outcome.extraction or sanitize_ai_payload(
                    ai_outcome.payload, retrieval, first.pool, domains
                )
            except AiInferenceError as e:
                logger.warning("Discarding malformed AI payload: %s", e)
                ai_status = "failed"
                errors.append(f"ai: {e}")

        if ai_status == "ok" and extraction is not None:
            merged, merge_errors = merge_ai_extraction(
                first.pool, extraction, plan.roles, first.next_order
            )
            errors.extend(str(e) for e in merge_errors)
            resolutions = resolve_pool(merged)
        else:
            extraction = None
            notes.append("AI unavailable; showing deterministic evidence only")

    result = assemble_result(
        identity=request.identity,
        resolutions=resolutions,
        retrieval=retrieval,
        ai_status=ai_status,
        contacts=extract_contacts(extraction),
        notes=notes,
        errors=errors,
    )
    logger.info(
        "Resolved parties for %s: confirmed=%d conflicting=%d ai_status=%s",
        request.identity.describe(),
        sum(1 for a in result.parties.values() if a is not None),
        len(result.candidates),
        result.ai_status,
    )
    return result
