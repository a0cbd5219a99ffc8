"""
Provider contracts consumed by the runtime

The runtime depends only on these protocols; the httpx-backed clients in
pandora.llm.anthropic and pandora.llm.openai_compatible implement them, and
tests substitute scripted fakes.
"""

import asyncio
from collections.abc import Awaitable, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from pandora.engine.errors import ProviderError
from pandora.llm.types import ClassificationResponse, Message, ReasoningResponse, ToolSchema

T = TypeVar("T")


@runtime_checkable
class ClassificationProvider(Protocol):
    """Bulk, cheap model used by classify steps"""

    async def classify(
        self,
        prompt: str,
        schema: dict[str, Any] | None = None,
        system_prompt: str | None = None,
    ) -> ClassificationResponse: ...


@runtime_checkable
class ReasoningProvider(Protocol):
    """Strategic, tool-using model used by reason steps"""

    async def respond(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Sequence[ToolSchema],
        max_tokens: int,
    ) -> ReasoningResponse: ...


async def call_with_timeout(awaitable: Awaitable[T], timeout: float | None, provider: str) -> T:
    """
    Await a provider call, converting a timeout into a ProviderError

    Raises:
        ProviderError: If the call does not finish within `timeout` seconds
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError as e:
        raise ProviderError(f"{provider} call timed out after {timeout}s") from e
