# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
Tier orderings (confidence, strength) live here too so that every
component ranks evidence the same way.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# === TIERS ===

Role = Literal[
    "registeredOwner",
    "beneficialOwner",
    "operator",
    "manager",
    "bareboatCharterer",
]
Confidence = Literal["high", "medium", "low"]
Strength = Literal["strong", "medium", "weak", "none"]
EvidenceSource = Literal["ais_static", "external", "ai"]
Mode = Literal["strict", "balanced", "aggressive"]
AiStatus = Literal["ok", "failed", "skipped", "not_requested"]
RetrievalStatus = Literal["ok", "empty"]
PartyStatus = Literal["confirmed", "ai_inferred_no_evidence"]

ROLES: tuple[Role, ...] = (
    "registeredOwner",
    "beneficialOwner",
    "operator",
    "manager",
    "bareboatCharterer",
)

CONFIDENCE_RANK: dict[str, int] = {"low": 1, "medium": 2, "high": 3}
STRENGTH_RANK: dict[str, int] = {"none": 0, "weak": 1, "medium": 2, "strong": 3}


def max_confidence(values: list[Confidence]) -> Confidence:
    """Highest confidence tier among values (``low`` for an empty list)."""
    if not values:
        return "low"
    return max(values, key=lambda v: CONFIDENCE_RANK[v])


def max_strength(values: list[Strength]) -> Strength:
    """Highest strength tier among values (``none`` for an empty list)."""
    if not values:
        return "none"
    return max(values, key=lambda v: STRENGTH_RANK[v])


def cap_strength(value: Strength, ceiling: Strength) -> Strength:
    """Clamp a strength tier so it never exceeds ceiling."""
    if STRENGTH_RANK[value] > STRENGTH_RANK[ceiling]:
        return ceiling
    return value


# === EVIDENCE ===


class EvidenceItem(BaseModel):
    """One atomic, sourced claim locator. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    source: EvidenceSource
    path: str = Field(min_length=1)
    strength: Strength
    note: str | None = None

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.source, self.path, self.note or "")


class NormalizedClaim(BaseModel):
    """A single evidence item bound to a role and a display name."""

    model_config = ConfigDict(frozen=True)

    role: Role
    name: str
    normalized_key: str
    confidence: Confidence
    evidence: EvidenceItem
    order: int = 0


# === PARTIES ===


class PartyCandidate(BaseModel):
    """A grouped, scored claim for a role."""

    name: str
    normalized_key: str
    confidence: Confidence
    evidence: list[EvidenceItem]
    score: int = 0


class PartyAnswer(BaseModel):
    """The confirmed slot for a role."""

    name: str
    status: PartyStatus
    confidence: Confidence
    evidence: list[EvidenceItem]


class Contact(BaseModel):
    """Company contact backed only by strong official evidence."""

    company: str
    type: str = "unknown"
    value: str
    source: str = "public"
    evidence: list[EvidenceItem] = Field(default_factory=list)


# === IDENTITY & RETRIEVAL ===


class ShipIdentity(BaseModel):
    """Structured ship identity supplied by the caller."""

    imo: str | None = None
    mmsi: str | None = None
    name: str | None = None
    callsign: str | None = None
    flag: str | None = None
    ship_type: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        text = " ".join(str(v).split())
        return text or None

    @property
    def has_identifier(self) -> bool:
        return any((self.imo, self.mmsi, self.name, self.callsign))

    @property
    def cache_key(self) -> str:
        """Stable key for per-ship caches."""
        return "|".join(
            (self.imo or "", self.mmsi or "", (self.name or "").lower(), self.callsign or "")
        )

    def describe(self) -> str:
        """Short human label used in logs."""
        for label, value in (
            ("imo", self.imo), ("mmsi", self.mmsi),
            ("name", self.name), ("callsign", self.callsign),
        ):
            if value:
                return f"{label}={value}"
        return "unidentified"


class PublicSnippet(BaseModel):
    """Text snippet returned by the retrieval collaborator."""

    id: str
    source: str
    url: str
    title: str = ""
    snippet: str
    retrieved_at: float = 0.0


class RetrievalResult(BaseModel):
    """Outcome of public-source retrieval."""

    status: RetrievalStatus = "empty"
    snippets: list[PublicSnippet] = Field(default_factory=list)

    def snippet_by_id(self, snippet_id: str) -> PublicSnippet | None:
        for s in self.snippets:
            if s.id == snippet_id:
                return s
        return None


# === AI ===


class AiPartyGuess(BaseModel):
    """Sanitized per-role guess from the AI collaborator."""

    name: str
    confidence: Confidence = "low"
    evidence: list[EvidenceItem] = Field(default_factory=list)


class AiExtraction(BaseModel):
    """Sanitized AI payload: per-role guesses, alternates and contacts."""

    parties: dict[Role, AiPartyGuess | None] = Field(default_factory=dict)
    candidates: dict[Role, list[AiPartyGuess]] = Field(default_factory=dict)
    contacts: list[Contact] = Field(default_factory=list)

    def guesses_for(self, role: Role) -> list[AiPartyGuess]:
        """Primary guess first, then alternates."""
        out: list[AiPartyGuess] = []
        primary = self.parties.get(role)
        if primary is not None:
            out.append(primary)
        out.extend(self.candidates.get(role, []))
        return out


# === REQUEST / RESULT ===


class PartiesRequest(BaseModel):
    """Caller input to the resolution engine."""

    identity: ShipIdentity = Field(default_factory=ShipIdentity)
    ais_static: dict[str, Any] | None = None
    external: list[Any] | dict[str, Any] | None = None
    mode: Mode = "aggressive"


class PartiesResult(BaseModel):
    """Per-ship aggregate root returned by the engine (v2 shape)."""

    identity: ShipIdentity
    parties: dict[Role, PartyAnswer | None]
    candidates: dict[Role, list[PartyCandidate]] = Field(default_factory=dict)
    public_evidence: RetrievalResult = Field(default_factory=RetrievalResult)
    contacts: list[Contact] = Field(default_factory=list)
    ai_status: AiStatus = "not_requested"
    retrieval_status: RetrievalStatus = "empty"
    notes: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
