# src/api/app.py — v1
"""FastAPI application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shipparties.api.facade import Collaborators, create_collaborators
from shipparties.api.routes import router
from shipparties.config.settings import Settings, load_settings
from shipparties.core.errors import SchemaViolation
from shipparties.version import __version__

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    collaborators: Collaborators | None = None,
) -> FastAPI:
    """Build the app. Collaborators default to those described by settings."""
    settings = settings or load_settings()
    app = FastAPI(title="Ship Parties", version=__version__)
    app.state.settings = settings
    app.state.collaborators = collaborators or create_collaborators(settings)
    app.include_router(router)

    @app.exception_handler(SchemaViolation)
    async def _schema_violation(request: Request, exc: SchemaViolation) -> JSONResponse:
        logger.error("Output invariant violated for %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "internal invariant violated", "violations": exc.violations},
        )

    return app
