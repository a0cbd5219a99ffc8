"""
Provider-agnostic conversation types

Messages exchanged with the reasoning provider are a role plus either plain
text or a list of content blocks. Tool invocations requested by the model and
the results sent back are blocks, so a single assistant turn can carry several
calls and a single user turn can carry all of their results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal


class StopReason(str, Enum):
    """Why the provider stopped generating"""

    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"


@dataclass(frozen=True)
class TextBlock:
    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ToolUseBlock:
    """A tool invocation requested by the model"""

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    type: Literal["tool_use"] = "tool_use"


@dataclass(frozen=True)
class ToolResultBlock:
    """Result (or error payload) for one tool invocation"""

    tool_use_id: str
    content: str
    is_error: bool = False
    type: Literal["tool_result"] = "tool_result"


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


@dataclass(frozen=True)
class Message:
    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]

    @property
    def blocks(self) -> list[ContentBlock]:
        if isinstance(self.content, str):
            return [TextBlock(text=self.content)]
        return list(self.content)


@dataclass(frozen=True)
class ToolSchema:
    """Tool description offered to the model"""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass(frozen=True)
class LLMUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class ReasoningResponse:
    """One turn returned by the reasoning provider"""

    content: list[ContentBlock]
    stop_reason: StopReason | str
    usage: LLMUsage = field(default_factory=LLMUsage)

    @property
    def text(self) -> str:
        return "\n".join(block.text for block in self.content if isinstance(block, TextBlock))

    @property
    def tool_calls(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    @property
    def wants_tools(self) -> bool:
        return self.stop_reason == StopReason.TOOL_USE


@dataclass(frozen=True)
class ClassificationResponse:
    """Reply returned by the classification provider"""

    text: str
    usage: LLMUsage = field(default_factory=LLMUsage)
