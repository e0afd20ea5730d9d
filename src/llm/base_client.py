# src/llm/base_client.py — v3
"""Abstract LLM client interface.

Every call here asks for structured output: the engine only ever consumes
JSON shaped like a pydantic response model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from shipparties.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        response_format: type[BaseModel],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.1,
    ) -> LLMResponse:
        """JSON completion; content is a JSON document for response_format."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, google)."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier sent to the provider."""
