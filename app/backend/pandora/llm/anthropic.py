"""
Anthropic Messages API client used as the reasoning provider

Maps the engine's provider-agnostic messages and tool schemas to the wire
format and parses replies back into content blocks.
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from pandora.core.config import Settings
from pandora.engine.errors import ProviderError
from pandora.llm.types import (
    ContentBlock,
    LLMUsage,
    Message,
    ReasoningResponse,
    StopReason,
    TextBlock,
    ToolResultBlock,
    ToolSchema,
    ToolUseBlock,
)

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


def block_to_wire(block: ContentBlock) -> dict[str, Any]:
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    return {
        "type": "tool_result",
        "tool_use_id": block.tool_use_id,
        "content": block.content,
        "is_error": block.is_error,
    }


def message_to_wire(message: Message) -> dict[str, Any]:
    if isinstance(message.content, str):
        return {"role": message.role, "content": message.content}
    return {"role": message.role, "content": [block_to_wire(block) for block in message.content]}


def tool_to_wire(tool: ToolSchema) -> dict[str, Any]:
    return {"name": tool.name, "description": tool.description, "input_schema": tool.parameters}


def parse_content(raw_blocks: list[dict[str, Any]]) -> list[ContentBlock]:
    """Parse reply content; block types the engine does not use are skipped"""
    blocks: list[ContentBlock] = []
    for raw in raw_blocks:
        if raw.get("type") == "text":
            blocks.append(TextBlock(text=raw.get("text", "")))
        elif raw.get("type") == "tool_use":
            blocks.append(ToolUseBlock(id=raw["id"], name=raw["name"], input=raw.get("input") or {}))
    return blocks


def _parse_stop_reason(value: str | None) -> StopReason | str:
    try:
        return StopReason(value)
    except ValueError:
        return value or ""


class AnthropicReasoningProvider:
    """
    Reasoning provider backed by the Anthropic Messages API

    Pass `client` to reuse a connection pool (or a mock transport in tests);
    otherwise a client is opened per call.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.anthropic.com",
        temperature: float = 0.7,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnthropicReasoningProvider":
        return cls(
            api_key=settings.ANTHROPIC_API_KEY.get_secret_value(),
            model=settings.REASONING_MODEL,
            base_url=settings.ANTHROPIC_BASE_URL,
            temperature=settings.REASONING_TEMPERATURE,
        )

    @property
    def headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def build_payload(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Sequence[ToolSchema],
        max_tokens: int,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": self.temperature,
            "system": system_prompt,
            "messages": [message_to_wire(message) for message in messages],
        }
        if tools:
            payload["tools"] = [tool_to_wire(tool) for tool in tools]
        return payload

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> httpx.Response:
        return await client.post(f"{self.base_url}/v1/messages", json=payload, headers=self.headers)

    async def respond(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Sequence[ToolSchema],
        max_tokens: int,
    ) -> ReasoningResponse:
        """
        Send one turn to the Messages API

        Raises:
            ProviderError: On transport errors, non-2xx replies or malformed bodies
        """
        payload = self.build_payload(system_prompt, messages, tools, max_tokens)
        try:
            if self.client is not None:
                response = await self._post(self.client, payload)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, payload)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling Anthropic: {e}")
            raise ProviderError(f"Network error: {str(e)}") from e

        if response.status_code >= 400:
            logger.error(f"Anthropic returned {response.status_code}: {response.text[:500]}")
            raise ProviderError(f"Anthropic API error {response.status_code}: {response.text[:500]}")

        try:
            body = response.json()
            usage = body.get("usage") or {}
            return ReasoningResponse(
                content=parse_content(body.get("content") or []),
                stop_reason=_parse_stop_reason(body.get("stop_reason")),
                usage=LLMUsage(
                    input_tokens=int(usage.get("input_tokens", 0)),
                    output_tokens=int(usage.get("output_tokens", 0)),
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed Anthropic response: {e}")
            raise ProviderError(f"Malformed Anthropic response: {str(e)}") from e
