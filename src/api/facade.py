# src/api/facade.py — v2
"""Public API facade — single entry point for parties resolution.

Usage:
    from shipparties.api.facade import resolve_ship_parties
    result = await resolve_ship_parties(request, settings)

Order of work for one ship:
  1. Reject requests without any identifier
  2. Await retrieval (public snippets, cached per identity)
  3. Deterministic pass + AI gate decision
  4. At most one AI call, bounded by ai_timeout_s (or a cached payload)
  5. Engine merge, assembly and validation
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from shipparties.config.settings import Settings
from shipparties.core.errors import AiInferenceError, IdentityMissingError
from shipparties.core.models import PartiesRequest, PartiesResult, RetrievalResult
from shipparties.logging.context import clear_context, set_request_context, set_stage_context
from shipparties.resolution.ai_gate import AiOutcome, AiPlan
from shipparties.resolution.engine import (
    DeterministicPass,
    build_parties_result,
    deterministic_pass,
    plan_for,
)

if TYPE_CHECKING:
    from shipparties.llm.inference import PartiesInferencer
    from shipparties.retrieval.base_cache_store import BaseCacheStore
    from shipparties.retrieval.retriever import PublicSourceRetriever

logger = logging.getLogger(__name__)

AI_CACHE_PREFIX = "ai:"
REUSED_AI_NOTE = "reused cached AI analysis"


@dataclass
class Collaborators:
    """Long-lived objects shared by every request."""

    cache_store: BaseCacheStore | None = None
    retriever: PublicSourceRetriever | None = None
    inferencer: PartiesInferencer | None = None


def create_collaborators(
    settings: Settings,
    retrieval: bool = True,
    ai: bool = True,
) -> Collaborators:
    """Build cache, retriever and inferencer from settings.

    Args:
        settings: Application settings.
        retrieval: False disables public retrieval regardless of settings.
        ai: False disables the AI collaborator regardless of settings.
    """
    from shipparties.llm.client_factory import create_client_from_settings
    from shipparties.llm.inference import PartiesInferencer
    from shipparties.retrieval.cache_factory import create_cache_store
    from shipparties.retrieval.retriever import PublicSourceRetriever

    cache_store = create_cache_store(settings)
    retriever = None
    if retrieval and settings.retrieval_enabled:
        retriever = PublicSourceRetriever(settings=settings, cache_store=cache_store)
    inferencer = None
    if ai and settings.ai_enabled:
        inferencer = PartiesInferencer(
            create_client_from_settings(settings),
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
    return Collaborators(cache_store=cache_store, retriever=retriever, inferencer=inferencer)


async def resolve_ship_parties(
    request: PartiesRequest,
    settings: Settings | None = None,
    retriever: PublicSourceRetriever | None = None,
    inferencer: PartiesInferencer | None = None,
    cache_store: BaseCacheStore | None = None,
    force_ai: bool = False,
    request_id: str | None = None,
) -> PartiesResult:
    """Resolve the parties of one ship end-to-end.

    Args:
        request: Identity, evidence inputs and mode.
        settings: Global settings. Loaded from .env if None.
        retriever: Public-source collaborator. None = no public evidence.
        inferencer: AI collaborator. None = AI never called.
        cache_store: Cache for AI payloads. None = no AI caching.
        force_ai: Ignore a cached AI payload and call the model again.
        request_id: Correlation id for logs (generated if None).

    Returns:
        Validated PartiesResult.

    Raises:
        IdentityMissingError: No imo, mmsi, name or callsign.
        SchemaViolation: Output invariant violated.
    """
    if not request.identity.has_identifier:
        raise IdentityMissingError()

    settings = settings or Settings()
    set_request_context(
        request_id or uuid.uuid4().hex[:12],
        request.identity.describe(),
        request.mode,
    )
    try:
        retrieval = RetrievalResult()
        if retriever is not None:
            retrieval = await retriever.retrieve(request.identity)

        set_stage_context("resolve")
        first = deterministic_pass(request)
        plan = plan_for(request, retrieval, first)

        ai_outcome = None
        if plan.requested and inferencer is not None:
            ai_outcome = await _run_ai(
                request, first, plan, retrieval, settings, inferencer, cache_store, force_ai
            )

        set_stage_context("resolve")
        return build_parties_result(
            request,
            retrieval=retrieval,
            ai_outcome=ai_outcome,
            authority_domains=settings.authority_domain_list,
            first=first,
        )
    finally:
        clear_context()


async def _run_ai(
    request: PartiesRequest,
    first: DeterministicPass,
    plan: AiPlan,
    retrieval: RetrievalResult,
    settings: Settings,
    inferencer: PartiesInferencer,
    cache_store: BaseCacheStore | None,
    force_ai: bool,
) -> AiOutcome:
    """Call the AI once (or reuse its cached payload) for the planned roles."""
    set_stage_context("ai")
    cache_key = f"{AI_CACHE_PREFIX}{request.identity.cache_key}"

    if cache_store is not None and not force_ai:
        cached = await cache_store.get(cache_key)
        if cached is not None:
            logger.info("Reusing cached AI payload for %s", request.identity.describe())
            return AiOutcome(status="ok", payload=cached, notes=[REUSED_AI_NOTE])

    try:
        payload: Any = await asyncio.wait_for(
            inferencer.infer_parties(request.identity, first.pool, retrieval, plan.roles),
            timeout=settings.ai_timeout_s,
        )
    except asyncio.TimeoutError:
        logger.warning("AI call timed out after %ss", settings.ai_timeout_s)
        return AiOutcome(
            status="failed", errors=[f"ai: timed out after {settings.ai_timeout_s}s"]
        )
    except AiInferenceError as e:
        logger.warning("AI call failed: %s", e)
        return AiOutcome(status="failed", errors=[f"ai: {e}"])

    if cache_store is not None:
        await cache_store.put(cache_key, payload, settings.ai_cache_ttl_s)
    return AiOutcome(status="ok", payload=payload)
