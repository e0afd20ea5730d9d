# src/resolution/ai_gate.py — v1
"""AI Gate & Merger — when to ask the AI, and how its answers re-enter.

Each role moves through a small state machine:

    EMPTY ──┐
            ├─(gate says ask)──> AWAITING_AI ──(merge)──> resolver again
    CONFLICTING ┘
    RESOLVED (final, never re-asked)

Gate policy per mode:
  - strict:     never ask; ai_status = "skipped".
  - balanced:   ask only for roles with no candidate at all, and only when
                retrieval found public text (retrieval_status == "ok").
  - aggressive: ask for every EMPTY or CONFLICTING role, whatever the
                retrieval status.

AI answers are folded into the pool exactly like deterministic claims. A
guess without a citable locator gets a single strength="none" evidence item
and a "low" confidence, so it can only ever surface as
"ai_inferred_no_evidence" and never outranks real evidence on confidence.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from shipparties.core.errors import AiInferenceError, ValidationError
from shipparties.core.models import (
    CONFIDENCE_RANK,
    ROLES,
    STRENGTH_RANK,
    AiExtraction,
    AiPartyGuess,
    AiStatus,
    Contact,
    EvidenceItem,
    Mode,
    NormalizedClaim,
    RetrievalResult,
    RetrievalStatus,
    Role,
    Strength,
    cap_strength,
)
from shipparties.resolution.normalizer import make_claim, normalize_key
from shipparties.resolution.pool import CandidatePool, add_claims, roles_needing_ai
from shipparties.resolution.resolver import RoleResolution

logger = logging.getLogger(__name__)

NO_EVIDENCE_NOTE = "AI inference without citable evidence"
DEFAULT_AUTHORITY_DOMAINS: tuple[str, ...] = ("equasis.org", "imo.org")
_SNIPPET_PATH = re.compile(r"^public_evidence\.snippets\[([^\]]+)\]$")
_CITATION_CEILING: Strength = "weak"


class RoleState(str, Enum):
    """Per-role position in the resolution state machine."""

    EMPTY = "empty"
    CONFLICTING = "conflicting"
    RESOLVED = "resolved"
    AWAITING_AI = "awaiting_ai"


@dataclass
class AiPlan:
    """Gate decision: which roles to ask about, and the status if none."""

    roles: list[Role] = field(default_factory=list)
    states: dict[Role, RoleState] = field(default_factory=dict)
    ai_status: AiStatus = "not_requested"
    reason: str = ""

    @property
    def requested(self) -> bool:
        return bool(self.roles)


@dataclass
class AiOutcome:
    """What the facade got back from the AI collaborator.

    payload is the raw JSON the model produced (fresh or from the analysis
    cache); the engine sanitizes it against the current evidence.
    extraction may be supplied instead by callers that already sanitized it.
    """

    status: AiStatus
    payload: Any = None
    extraction: AiExtraction | None = None
    notes: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def classify_roles(resolutions: dict[Role, RoleResolution]) -> dict[Role, RoleState]:
    """Map each role's deterministic resolution to a state."""
    states: dict[Role, RoleState] = {}
    for role in ROLES:
        res = resolutions.get(role) or RoleResolution()
        if res.is_resolved:
            states[role] = RoleState.RESOLVED
        elif res.is_conflicting:
            states[role] = RoleState.CONFLICTING
        else:
            states[role] = RoleState.EMPTY
    return states


def plan_ai_request(
    mode: Mode,
    retrieval_status: RetrievalStatus,
    pool: CandidatePool,
    resolutions: dict[Role, RoleResolution],
) -> AiPlan:
    """Apply the mode policy to the deterministic pass."""
    states = classify_roles(resolutions)

    if mode == "strict":
        return AiPlan(states=states, ai_status="skipped", reason="strict mode")

    if mode == "balanced":
        if retrieval_status != "ok":
            return AiPlan(
                states=states,
                reason="no public evidence to ground an AI request",
            )
        roles = roles_needing_ai(pool)
    else:
        roles = [
            r for r in ROLES
            if states[r] in (RoleState.EMPTY, RoleState.CONFLICTING)
        ]

    if not roles:
        return AiPlan(states=states, reason="every role settled by deterministic evidence")

    for role in roles:
        states[role] = RoleState.AWAITING_AI
    logger.info("AI gate (%s): requesting roles %s", mode, ", ".join(roles))
    return AiPlan(roles=roles, states=states, ai_status="not_requested")


# === SANITIZING ===


def candidate_locators(pool: CandidatePool) -> dict[tuple[Role, str], set[str]]:
    """Deterministic locators per (role, normalized name)."""
    return {
        (role, c.normalized_key): {e.path for e in c.evidence}
        for role, cands in pool.items()
        for c in cands
    }


def sanitize_ai_payload(
    payload: Any,
    retrieval: RetrievalResult,
    pool: CandidatePool,
    authority_domains: list[str],
) -> AiExtraction:
    """Strictly parse raw AI JSON into an AiExtraction.

    Only citations the caller can verify survive: a snippet id that exists
    in retrieval, or a deterministic locator that already backs the same
    name for the same role in pool. Contacts may cite snippets only.

    Raises:
        AiInferenceError: payload (or one of its sections) has the wrong shape.
    """
    if not isinstance(payload, dict):
        raise AiInferenceError("AI payload is not a JSON object")

    parties_raw = _section(payload, "parties", {})
    candidates_raw = _section(payload, "candidates", {})
    contacts_raw = _section(payload, "contacts", [])
    if not isinstance(parties_raw, dict) or not isinstance(candidates_raw, dict):
        raise AiInferenceError("AI payload parties/candidates must be objects")
    if not isinstance(contacts_raw, list):
        raise AiInferenceError("AI payload contacts must be an array")

    locators = candidate_locators(pool)

    def cite(items: Any, role: Role | None = None, name: str = "") -> list[EvidenceItem]:
        known = locators.get((role, normalize_key(name)), set()) if role else set()
        return _sanitize_evidence(items, retrieval, known, authority_domains)

    extraction = AiExtraction()
    for role in ROLES:
        guess = _sanitize_guess(parties_raw.get(role), role, cite)
        if guess is not None:
            extraction.parties[role] = guess
        alternates = candidates_raw.get(role) or []
        if isinstance(alternates, list):
            sanitized = [g for g in (_sanitize_guess(a, role, cite) for a in alternates) if g]
            if sanitized:
                extraction.candidates[role] = sanitized

    for item in contacts_raw:
        if not isinstance(item, dict) or not item.get("value") or not item.get("company"):
            continue
        extraction.contacts.append(
            Contact(
                company=str(item["company"]).strip(),
                type=str(item.get("type") or "unknown"),
                value=str(item["value"]).strip(),
                source=str(item.get("source") or "public"),
                evidence=cite(item.get("evidence")),
            )
        )
    return extraction


def _section(payload: dict[str, Any], key: str, default: Any) -> Any:
    value = payload.get(key)
    return default if value is None else value


def _sanitize_guess(raw: Any, role: Role, cite) -> AiPartyGuess | None:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name") or raw.get("value")
    if not isinstance(name, str) or not name.strip():
        return None
    confidence = raw.get("confidence")
    if confidence not in CONFIDENCE_RANK:
        confidence = "low"
    return AiPartyGuess(
        name=name.strip(),
        confidence=confidence,
        evidence=cite(raw.get("evidence"), role, name.strip()),
    )


def _sanitize_evidence(
    items: Any,
    retrieval: RetrievalResult,
    known_paths: set[str],
    authority_domains: list[str],
) -> list[EvidenceItem]:
    if not isinstance(items, list):
        return []
    out: list[EvidenceItem] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        path = str(item.get("path") or "").strip()
        claimed = item.get("strength")
        if claimed not in STRENGTH_RANK:
            claimed = _CITATION_CEILING
        note = str(item["note"]) if item.get("note") else None

        match = _SNIPPET_PATH.match(path)
        if match:
            snippet = retrieval.snippet_by_id(match.group(1))
            if snippet is None:
                logger.debug("Dropping AI citation of unknown snippet %s", path)
                continue
            if is_authority_url(snippet.url, authority_domains):
                strength: Strength = "strong"
            else:
                strength = cap_strength(claimed, _CITATION_CEILING)
        elif path in known_paths:
            strength = cap_strength(claimed, _CITATION_CEILING)
        else:
            logger.debug("Dropping unverifiable AI citation %r", path)
            continue

        if strength == "none":
            continue
        out.append(EvidenceItem(source="ai", path=path, strength=strength, note=note))
    return out


def is_authority_url(url: str, authority_domains: list[str]) -> bool:
    """True when url's host is (a subdomain of) an official registry domain."""
    host = (urlparse(url).hostname or "").lower().removeprefix("www.")
    return any(host == d or host.endswith(f".{d}") for d in authority_domains)


# === MERGING ===


def guesses_to_claims(
    extraction: AiExtraction,
    roles: list[Role],
    start_order: int,
) -> tuple[list[NormalizedClaim], list[ValidationError]]:
    """Turn AI guesses for the planned roles into claims."""
    claims: list[NormalizedClaim] = []
    errors: list[ValidationError] = []
    order = start_order
    for role in roles:
        has_primary = extraction.parties.get(role) is not None
        for idx, guess in enumerate(extraction.guesses_for(role)):
            if guess.evidence:
                evidence, confidence = list(guess.evidence), guess.confidence
            else:
                if has_primary and idx == 0:
                    path = f"ai.parties.{role}"
                else:
                    path = f"ai.candidates.{role}[{idx - 1 if has_primary else idx}]"
                evidence = [
                    EvidenceItem(
                        source="ai",
                        path=path,
                        strength="none",
                        note=NO_EVIDENCE_NOTE,
                    )
                ]
                confidence = "low"
            for item in evidence:
                try:
                    claims.append(make_claim(role, guess.name, confidence, item, order))
                except ValidationError as e:
                    errors.append(e)
                order += 1
    return claims, errors


def merge_ai_extraction(
    pool: CandidatePool,
    extraction: AiExtraction,
    roles: list[Role],
    start_order: int,
) -> tuple[CandidatePool, list[ValidationError]]:
    """Fold AI guesses for the planned roles into a new pool.

    Guesses for roles the gate did not ask about are ignored: confirmed
    deterministic answers are final.
    """
    claims, errors = guesses_to_claims(extraction, roles, start_order)
    ignored = [
        r for r in ROLES
        if r not in roles and extraction.guesses_for(r)
    ]
    if ignored:
        logger.info("Ignoring AI guesses for roles not requested: %s", ", ".join(ignored))
    return add_claims(pool, claims), errors
