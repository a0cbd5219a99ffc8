"""
Model provider clients

The runtime talks to two providers: a bulk classification model and a
tool-using reasoning model.
"""

from pandora.llm.anthropic import AnthropicReasoningProvider
from pandora.llm.openai_compatible import OpenAICompatibleClassificationProvider
from pandora.llm.providers import ClassificationProvider, ReasoningProvider
from pandora.llm.types import (
    ClassificationResponse,
    LLMUsage,
    Message,
    ReasoningResponse,
    StopReason,
    TextBlock,
    ToolResultBlock,
    ToolSchema,
    ToolUseBlock,
)

__all__ = [
    "AnthropicReasoningProvider",
    "OpenAICompatibleClassificationProvider",
    "ClassificationProvider",
    "ReasoningProvider",
    "ClassificationResponse",
    "LLMUsage",
    "Message",
    "ReasoningResponse",
    "StopReason",
    "TextBlock",
    "ToolResultBlock",
    "ToolSchema",
    "ToolUseBlock",
]
