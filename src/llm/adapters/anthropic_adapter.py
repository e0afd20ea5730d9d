# src/llm/adapters/anthropic_adapter.py — v4
"""Anthropic Claude adapter implementing BaseLLMClient.

The answer is forced through a single tool call whose input_schema is the
response model's JSON schema, so content is always the tool input as JSON.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from pydantic import BaseModel

from shipparties.llm.base_client import BaseLLMClient
from shipparties.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)

_TOOL_NAME = "record_ship_parties"


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        client: Any = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self.__client = client

    @property
    def _client(self):
        """AsyncAnthropic, created on first call unless one was injected."""
        if self.__client is None:
            import anthropic

            self.__client = anthropic.AsyncAnthropic(api_key=self._api_key or "")
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        response_format: type[BaseModel],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.1,
    ) -> LLMResponse:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "tools": [
                {
                    "name": _TOOL_NAME,
                    "description": "Record the parties identified for the ship",
                    "input_schema": response_format.model_json_schema(),
                }
            ],
            "tool_choice": {"type": "tool", "name": _TOOL_NAME},
        }
        if system:
            kwargs["system"] = system

        start = time.monotonic()
        response = await self._client.messages.create(**kwargs)
        latency_ms = int((time.monotonic() - start) * 1000)

        logger.debug(
            "anthropic %s: %d in / %d out tokens, %d ms",
            self._model, response.usage.input_tokens, response.usage.output_tokens, latency_ms,
        )
        return LLMResponse(
            content=self._tool_input(response),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            provider="anthropic",
            latency_ms=latency_ms,
            raw_response=response,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model_name(self) -> str:
        return self._model

    @staticmethod
    def _tool_input(response: Any) -> str:
        """JSON of the forced tool call; empty when the model skipped it."""
        for block in response.content:
            if getattr(block, "type", None) == "tool_use":
                return json.dumps(block.input)
        return ""
