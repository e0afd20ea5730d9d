# src/resolution/normalizer.py — v1
"""Evidence Normalizer — first stage of the parties resolution engine.

Turns raw, caller-supplied claims (AIS-static fields, external evidence
records) into NormalizedClaim items. The external payload is parsed as a
strict tagged union: either a list of claim objects or a role -> value
mapping. Anything that does not fit is reported as a ValidationError and
dropped; one bad item never aborts the request.

No network or AI calls happen here.
"""

from __future__ import annotations

import itertools
import logging
import unicodedata
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from shipparties.core.errors import ValidationError
from shipparties.core.models import (
    ROLES,
    Confidence,
    EvidenceItem,
    NormalizedClaim,
    Role,
    Strength,
)

logger = logging.getLogger(__name__)

# AIS-static field names accepted per role.
AIS_FIELD_ALIASES: dict[Role, tuple[str, ...]] = {
    "registeredOwner": ("registeredOwner", "registered_owner", "owner", "shipOwner", "ship_owner"),
    "beneficialOwner": ("beneficialOwner", "beneficial_owner", "beneficialowner"),
    "operator": ("operator", "shipOperator", "operatorName", "ship_operator"),
    "manager": ("manager", "shipManager", "ship_manager"),
    "bareboatCharterer": ("bareboatCharterer", "bareboat_charterer"),
}

AIS_CONFIDENCE: Confidence = "medium"
AIS_STRENGTH: Strength = "medium"
EXTERNAL_DEFAULT_CONFIDENCE: Confidence = "medium"
EXTERNAL_DEFAULT_STRENGTH: Strength = "weak"
# Role -> value mappings carry no per-item metadata at all.
EXTERNAL_MAPPING_CONFIDENCE: Confidence = "low"


class RawExternalClaim(BaseModel):
    """Accepted shape of one external evidence record."""

    model_config = ConfigDict(extra="ignore")

    role: Role = Field(validation_alias=AliasChoices("role", "field"))
    value: str = Field(validation_alias=AliasChoices("value", "name"))
    confidence: Confidence = EXTERNAL_DEFAULT_CONFIDENCE
    strength: Strength = EXTERNAL_DEFAULT_STRENGTH
    path: str | None = None
    note: str | None = None

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("value must be a string")
        if isinstance(v, (int, float)):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("confidence", "strength", "path", "note", mode="before")
    @classmethod
    def _none_to_default(cls, v: Any, info) -> Any:  # noqa: N805
        if v is None or v == "":
            return cls.model_fields[info.field_name].default
        return v


@dataclass
class NormalizationReport:
    """Claims that parsed, plus the errors for those that did not."""

    claims: list[NormalizedClaim] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def error_messages(self) -> list[str]:
        return [str(e) for e in self.errors]


def normalize_key(name: str) -> str:
    """Grouping key for a party name.

    NFKC, case-fold, collapse whitespace, strip leading/trailing punctuation.
    """
    text = unicodedata.normalize("NFKC", name).casefold()
    text = " ".join(text.split())
    start, end = 0, len(text)
    while start < end and _is_edge_noise(text[start]):
        start += 1
    while end > start and _is_edge_noise(text[end - 1]):
        end -= 1
    return text[start:end]


def _is_edge_noise(ch: str) -> bool:
    if ch.isspace():
        return True
    category = unicodedata.category(ch)
    return category.startswith("P") or category in ("Sm", "Sk", "So")


def make_claim(
    role: Role,
    raw_name: str,
    confidence: Confidence,
    evidence: EvidenceItem,
    order: int,
) -> NormalizedClaim:
    """Build a NormalizedClaim, rejecting names with nothing to group on."""
    name = " ".join(raw_name.split())
    key = normalize_key(name)
    if not key:
        raise ValidationError(evidence.path, f"value {raw_name!r} has no name characters")
    return NormalizedClaim(
        role=role,
        name=name,
        normalized_key=key,
        confidence=confidence,
        evidence=evidence,
        order=order,
    )


def normalize_ais_static(
    ais_static: Any,
    counter: Iterator[int] | None = None,
) -> NormalizationReport:
    """Parse AIS-static fields (one value per alias key, medium/medium)."""
    report = NormalizationReport()
    if ais_static is None:
        return report
    if not isinstance(ais_static, dict):
        report.errors.append(ValidationError("ais_static", "expected an object"))
        return report

    counter = counter or itertools.count()
    for role in ROLES:
        for key in AIS_FIELD_ALIASES[role]:
            if key not in ais_static:
                continue
            raw = ais_static[key]
            path = f"ais_static.{key}"
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                continue
            if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
                report.errors.append(ValidationError(path, "expected a scalar value"))
                continue
            evidence = EvidenceItem(source="ais_static", path=path, strength=AIS_STRENGTH)
            try:
                report.claims.append(
                    make_claim(role, str(raw), AIS_CONFIDENCE, evidence, next(counter))
                )
            except ValidationError as e:
                report.errors.append(e)
    return report


def normalize_external(
    external: Any,
    counter: Iterator[int] | None = None,
) -> NormalizationReport:
    """Parse external evidence: a list of claim objects or a role -> value map."""
    report = NormalizationReport()
    if external is None:
        return report

    counter = counter or itertools.count()
    if isinstance(external, list):
        for idx, item in enumerate(external):
            _parse_external_item(item, idx, counter, report)
    elif isinstance(external, dict):
        _parse_external_mapping(external, counter, report)
    else:
        report.errors.append(ValidationError("external", "expected an array or an object"))
    return report


def _parse_external_item(
    item: Any,
    idx: int,
    counter: Iterator[int],
    report: NormalizationReport,
) -> None:
    default_path = f"external[{idx}]"
    if not isinstance(item, dict):
        report.errors.append(ValidationError(default_path, "expected an object"))
        return
    try:
        raw = RawExternalClaim.model_validate(item)
    except PydanticValidationError as e:
        report.errors.append(ValidationError(default_path, _first_error(e)))
        return
    if not raw.value:
        report.errors.append(ValidationError(default_path, "value is empty"))
        return

    evidence = EvidenceItem(
        source="external",
        path=raw.path or default_path,
        strength=raw.strength,
        note=raw.note,
    )
    try:
        report.claims.append(
            make_claim(raw.role, raw.value, raw.confidence, evidence, next(counter))
        )
    except ValidationError as e:
        report.errors.append(e)


def _parse_external_mapping(
    external: dict[str, Any],
    counter: Iterator[int],
    report: NormalizationReport,
) -> None:
    for key, raw in external.items():
        path = f"external.{key}"
        if key not in ROLES:
            report.errors.append(ValidationError(path, "unknown role"))
            continue
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            continue
        if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
            report.errors.append(ValidationError(path, "expected a scalar value"))
            continue
        evidence = EvidenceItem(
            source="external", path=path, strength=EXTERNAL_DEFAULT_STRENGTH
        )
        try:
            report.claims.append(
                make_claim(key, str(raw), EXTERNAL_MAPPING_CONFIDENCE, evidence, next(counter))  # type: ignore[arg-type]
            )
        except ValidationError as e:
            report.errors.append(e)


def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid")


def normalize_claims(ais_static: Any, external: Any) -> NormalizationReport:
    """Normalize both deterministic sources with one arrival order (AIS first)."""
    counter = itertools.count()
    ais = normalize_ais_static(ais_static, counter)
    ext = normalize_external(external, counter)
    report = NormalizationReport(
        claims=ais.claims + ext.claims,
        errors=ais.errors + ext.errors,
    )
    if report.errors:
        logger.warning(
            "Dropped %d malformed evidence item(s): %s",
            len(report.errors), "; ".join(report.error_messages),
        )
    logger.debug("Normalized %d claim(s)", len(report.claims))
    return report
