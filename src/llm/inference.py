# src/llm/inference.py — v1
"""AI collaborator — asks an LLM to name parties for unresolved roles.

The model sees the ship identity, the deterministic candidates found so far
and the retrieved public snippets, and answers with JSON shaped like
AiPayloadSchema. The raw dict is returned as-is: resolution/ai_gate.py
decides which citations survive.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, Field

from shipparties.core.errors import AiInferenceError
from shipparties.core.models import PartyCandidate, RetrievalResult, Role, ShipIdentity
from shipparties.llm.base_client import BaseLLMClient
from shipparties.llm.models import Message

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a maritime registry analyst. You identify the companies behind a "
    "ship (registered owner, beneficial owner, operator, ISM manager, bareboat "
    "charterer). Respond only with valid JSON. Never invent citations: cite "
    "only the evidence paths listed in the prompt."
)

_ROLE_LABELS: dict[str, str] = {
    "registeredOwner": "registered owner",
    "beneficialOwner": "beneficial (group) owner",
    "operator": "commercial operator",
    "manager": "ISM / technical manager",
    "bareboatCharterer": "bareboat charterer",
}


# === RESPONSE SCHEMA ===


class AiEvidenceSchema(BaseModel):
    """Citation the model attaches to a guess."""

    path: str
    strength: str = "weak"
    note: str | None = None


class AiGuessSchema(BaseModel):
    name: str
    confidence: str = "low"
    evidence: list[AiEvidenceSchema] = Field(default_factory=list)


class AiContactSchema(BaseModel):
    company: str
    type: str = "unknown"
    value: str
    source: str = "public"
    evidence: list[AiEvidenceSchema] = Field(default_factory=list)


class AiPayloadSchema(BaseModel):
    """JSON shape requested from the model."""

    parties: dict[str, AiGuessSchema | None] = Field(default_factory=dict)
    candidates: dict[str, list[AiGuessSchema]] = Field(default_factory=dict)
    contacts: list[AiContactSchema] = Field(default_factory=list)


# === PROMPT ===


def build_prompt(
    identity: ShipIdentity,
    evidence_so_far: dict[Role, list[PartyCandidate]],
    public_evidence: RetrievalResult,
    roles: list[Role],
) -> str:
    """Render the user prompt for one ship."""
    identity_lines = [
        f"- {k}: {v}"
        for k, v in identity.model_dump(exclude_none=True).items()
    ]

    evidence_lines: list[str] = []
    for role, cands in evidence_so_far.items():
        for c in cands:
            paths = ", ".join(e.path for e in c.evidence)
            evidence_lines.append(f"- {role}: {c.name} [{paths}]")

    snippet_lines = [
        f"- public_evidence.snippets[{s.id}] ({s.source}, {s.url}): {s.snippet}"
        for s in public_evidence.snippets
    ]

    wanted = "\n".join(f"- {r}: {_ROLE_LABELS.get(r, r)}" for r in roles)
    return (
        "Ship identity:\n" + ("\n".join(identity_lines) or "(none)")
        + "\n\nEvidence already collected:\n" + ("\n".join(evidence_lines) or "(none)")
        + "\n\nPublic snippets:\n" + ("\n".join(snippet_lines) or "(none)")
        + "\n\nRoles to answer:\n" + wanted
        + "\n\nReturn a JSON object with keys \"parties\" (role -> {name, "
        "confidence: high|medium|low, evidence: [{path, strength, note}]} or "
        "null), \"candidates\" (role -> list of alternate guesses, same shape) "
        "and \"contacts\" (list of {company, type, value, source, evidence}). "
        "An evidence path must be one of the snippet paths or bracketed "
        "locators above. Use an empty evidence list when nothing supports a "
        "guess. Answer only the roles listed."
    )


def parse_payload(content: str) -> dict[str, Any]:
    """Parse model output, tolerating a fenced code block.

    Raises:
        AiInferenceError: Output is not a JSON object.
    """
    text = content.strip()
    if text.startswith("```"):
        lines = [ln for ln in text.split("\n") if not ln.strip().startswith("```")]
        text = "\n".join(lines)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise AiInferenceError(f"AI returned unparsable JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise AiInferenceError("AI returned JSON that is not an object")
    return parsed


class PartiesInferencer:
    """Wraps a BaseLLMClient to answer party questions for one ship."""

    def __init__(
        self,
        llm: BaseLLMClient,
        max_tokens: int = 2048,
        temperature: float = 0.1,
    ) -> None:
        self._llm = llm
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def provider_name(self) -> str:
        return self._llm.provider_name

    async def infer_parties(
        self,
        identity: ShipIdentity,
        evidence_so_far: dict[Role, list[PartyCandidate]],
        public_evidence: RetrievalResult,
        roles: list[Role],
    ) -> dict[str, Any]:
        """Ask the model about roles and return its raw JSON payload.

        Args:
            identity: Ship being resolved.
            evidence_so_far: Deterministic candidate pool.
            public_evidence: Retrieved snippets the model may cite.
            roles: Roles the gate wants answered.

        Raises:
            AiInferenceError: Vendor error or unparsable output.
        """
        prompt = build_prompt(identity, evidence_so_far, public_evidence, roles)
        try:
            response = await self._llm.complete(
                messages=[Message(role="user", content=prompt)],
                system=SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                response_format=AiPayloadSchema,
            )
        except AiInferenceError:
            raise
        except Exception as e:
            raise AiInferenceError(
                f"{self._llm.provider_name} call failed: {type(e).__name__}: {e}"
            ) from e

        logger.info(
            "AI answered for %s (%s, %d ms)",
            identity.describe(), response.model, response.latency_ms,
        )
        return parse_payload(response.content)
