# src/core/errors.py — v1
"""Error taxonomy for the parties resolution engine.

Collaborator failures (retrieval, AI) are recovered locally and downgraded
to status flags. Only IdentityMissingError, SchemaViolation and
ConfigurationError (config/settings.py) propagate to callers.
"""

from __future__ import annotations


class PartiesError(Exception):
    """Base class for all engine errors."""


class ValidationError(PartiesError):
    """Malformed evidence item. The item is dropped, the request continues."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class IdentityMissingError(ValidationError):
    """No identifying field (imo, mmsi, name, callsign) supplied."""

    def __init__(self) -> None:
        super().__init__(
            "identity", "at least one of imo, mmsi, name, callsign is required"
        )


class RetrievalFailure(PartiesError):
    """A single public source timed out or errored."""

    def __init__(self, source: str, url: str, reason: str) -> None:
        self.source = source
        self.url = url
        self.reason = reason
        super().__init__(f"{source} ({url}): {reason}")


class AiInferenceError(PartiesError):
    """The AI collaborator errored, timed out or returned unparsable output."""


class SchemaViolation(PartiesError):
    """An output invariant was violated. This is a defect, never user input."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__("; ".join(violations))
