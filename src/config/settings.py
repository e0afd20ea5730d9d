# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: resolution
policy defaults, AI provider, retrieval limits, cache, logging, HTTP.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


DEFAULT_ALLOWLIST = (
    "vesselfinder.com,marinetraffic.com,fleetmon.com,shipspotting.com,"
    "wikidata.org,wikipedia.org,equasis.org,imo.org"
)


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Resolution policy ===
    default_mode: Literal["strict", "balanced", "aggressive"] = "aggressive"

    # === AI collaborator ===
    ai_enabled: bool = True
    llm_provider: str = "google"
    llm_model: str = "gemini-2.0-flash"
    llm_temperature: float = 0.1
    llm_max_tokens: int = 2048
    anthropic_api_key: str = ""
    google_api_key: str = ""
    ai_timeout_s: float = 45.0
    ai_cache_ttl_s: int = 24 * 60 * 60

    # === Retrieval collaborator ===
    retrieval_enabled: bool = True
    retrieval_allowlist: str = DEFAULT_ALLOWLIST
    authority_domains: str = "equasis.org,imo.org"
    retrieval_max_sources: int = 8
    retrieval_max_per_source: int = 1
    retrieval_max_snippets: int = 12
    retrieval_max_queries: int = 10
    retrieval_timeout_s: float = 8.0
    retrieval_ttl_s: int = 24 * 60 * 60
    retrieval_snippet_chars: int = 800
    retrieval_user_agent: str = "ShipPartiesBot/0.2 (+https://example.invalid/bot)"

    # === Cache ===
    cache_backend: Literal["memory", "json"] = "memory"
    cache_root: Path = Path("~/.shipparties/cache")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # === HTTP ===
    api_host: str = "127.0.0.1"
    api_port: int = 8080

    # --- Validators ---

    @field_validator(
        "retrieval_max_sources",
        "retrieval_max_per_source",
        "retrieval_max_snippets",
        "retrieval_max_queries",
        "retrieval_snippet_chars",
        "llm_max_tokens",
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("ai_timeout_s", "retrieval_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("timeout must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field consistency rules."""
        errors: list[str] = []

        if self.retrieval_max_per_source > self.retrieval_max_snippets:
            errors.append(
                "RETRIEVAL_MAX_PER_SOURCE must be <= RETRIEVAL_MAX_SNIPPETS"
            )

        if self.retrieval_enabled and not self.allowlist:
            errors.append("RETRIEVAL_ENABLED requires a non-empty RETRIEVAL_ALLOWLIST")

        stray = [d for d in self.authority_domain_list if d not in self.allowlist]
        if stray:
            errors.append(
                f"AUTHORITY_DOMAINS not in RETRIEVAL_ALLOWLIST: {', '.join(stray)}"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def allowlist(self) -> list[str]:
        """Parse comma-separated retrieval allowlist."""
        return _split_domains(self.retrieval_allowlist)

    @property
    def authority_domain_list(self) -> list[str]:
        """Parse comma-separated authority (official registry) domains."""
        return _split_domains(self.authority_domains)


def _split_domains(raw: str) -> list[str]:
    return [
        d.strip().lower().removeprefix("www.")
        for d in raw.split(",")
        if d.strip()
    ]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-request config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
