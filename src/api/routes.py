# src/api/routes.py — v1
"""HTTP endpoints: ship parties lookup and health check."""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from shipparties.api.facade import Collaborators, resolve_ship_parties
from shipparties.config.settings import Settings
from shipparties.core.errors import IdentityMissingError
from shipparties.core.models import PartiesRequest, ShipIdentity
from shipparties.resolution.legacy import to_v1_response
from shipparties.version import __version__

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Parties"])


# --- Dependencies ---


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_collaborators(request: Request) -> Collaborators:
    return request.app.state.collaborators


def parse_json_param(name: str, raw: str | None, allowed: tuple[type, ...]) -> Any:
    """Decode a JSON-encoded query parameter or raise a 400."""
    if raw is None or not raw.strip():
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"{name}: malformed JSON ({e.msg})") from e
    if not isinstance(value, allowed):
        kinds = " or ".join("object" if t is dict else "array" for t in allowed)
        raise HTTPException(status_code=400, detail=f"{name}: expected a JSON {kinds}")
    return value


# --- Endpoints ---


@router.get("/api/ship/parties")
async def get_ship_parties(
    imo: str | None = Query(None, description="IMO number"),
    mmsi: str | None = Query(None, description="MMSI"),
    name: str | None = Query(None, description="Ship name"),
    callsign: str | None = Query(None, description="Radio call sign"),
    ais_static: str | None = Query(None, description="AIS static record (JSON object)"),
    external: str | None = Query(None, description="External claims (JSON array or object)"),
    force_ai: bool = Query(False, description="Ignore the cached AI analysis"),
    v: int = Query(2, ge=1, le=2, description="Response shape version"),
    mode: Literal["strict", "balanced", "aggressive"] | None = Query(None),
    settings: Settings = Depends(get_settings),
    collaborators: Collaborators = Depends(get_collaborators),
) -> dict[str, Any]:
    """Resolve owner, operator and manager of a ship with evidence."""
    request = PartiesRequest(
        identity=ShipIdentity(imo=imo, mmsi=mmsi, name=name, callsign=callsign),
        ais_static=parse_json_param("ais_static", ais_static, (dict,)),
        external=parse_json_param("external", external, (list, dict)),
        mode=mode or settings.default_mode,
    )
    try:
        result = await resolve_ship_parties(
            request,
            settings=settings,
            retriever=collaborators.retriever,
            inferencer=collaborators.inferencer,
            cache_store=collaborators.cache_store,
            force_ai=force_ai,
        )
    except IdentityMissingError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if v == 1:
        return to_v1_response(result)
    return result.model_dump(mode="json")


@router.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok", "version": __version__}
