# src/logging/context.py — v2
"""Contextual logging support — attach request_id, ship, stage, mode to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging — set per resolution request.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_ship: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "ship", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
_mode: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "mode", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    ship: str | None = None
    stage: str | None = None
    mode: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        ship=_ship.get(),
        stage=_stage.get(),
        mode=_mode.get(),
    )


def set_request_context(request_id: str, ship: str, mode: str | None = None) -> None:
    """Set request-level context (called once per resolution request)."""
    _request_id.set(request_id)
    _ship.set(ship)
    _mode.set(mode)
    _stage.set(None)


def set_stage_context(stage: str | None) -> None:
    """Set the current stage (retrieval, ai, resolve)."""
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _ship.set(None)
    _stage.set(None)
    _mode.set(None)
