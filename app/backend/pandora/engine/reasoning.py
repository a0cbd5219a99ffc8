"""
Bounded tool-use loop for reason steps

The loop is a small state machine:

    REQUESTING --tool_use--> EXECUTING_TOOLS --> REQUESTING --> ...
    REQUESTING --any other stop--> DONE
    REQUESTING --tool_use after max_tool_calls tool turns--> LIMIT_REACHED

Every REQUESTING turn is one provider call, so a loop bounded at N tool turns
makes at most N + 1 provider calls. Reaching the bound is a soft stop: the
step output becomes TOOL_LIMIT_NOTICE and no exception is raised.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from pandora.engine.context import ExecutionContext
from pandora.llm.providers import ReasoningProvider, call_with_timeout
from pandora.llm.types import ContentBlock, LLMUsage, Message, ReasoningResponse, ToolSchema
from pandora.schemas.skill import DEFAULT_MAX_TOOL_CALLS, StepTier
from pandora.skills.executor import ToolExecutor

logger = logging.getLogger(__name__)

TOOL_LIMIT_NOTICE: Final = (
    "[Analysis stopped: the tool call limit for this step was reached before the "
    "model finished. Results may be incomplete.]"
)


class LoopState(str, Enum):
    REQUESTING = "requesting"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    LIMIT_REACHED = "limit_reached"


@dataclass
class LoopOutcome:
    """Terminal record of one loop run"""

    state: LoopState
    output: str
    provider_calls: int = 0
    tool_turns: int = 0
    tool_invocations: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    transcript: list[Message] = field(default_factory=list)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def limit_reached(self) -> bool:
        return self.state == LoopState.LIMIT_REACHED


class ReasoningLoop:
    """
    Drives a multi-turn conversation with the reasoning provider

    Tool calls requested in one turn run sequentially in request order through
    the executor's isolated path, so a missing or failing tool turns into an
    error payload for the model instead of ending the loop.
    """

    def __init__(
        self,
        provider: ReasoningProvider,
        tool_executor: ToolExecutor,
        max_tool_calls: int = DEFAULT_MAX_TOOL_CALLS,
        max_tokens: int = 4096,
        call_timeout: float | None = None,
        tier: StepTier = StepTier.REASON,
    ) -> None:
        if max_tool_calls < 0:
            raise ValueError("max_tool_calls cannot be negative")
        self.provider = provider
        self.tool_executor = tool_executor
        self.max_tool_calls = max_tool_calls
        self.max_tokens = max_tokens
        self.call_timeout = call_timeout
        self.tier = tier

    @property
    def tools(self) -> list[ToolSchema]:
        return self.tool_executor.registry.get_tool_definitions()

    async def _request(
        self, system_prompt: str, outcome: LoopOutcome, context: ExecutionContext
    ) -> ReasoningResponse:
        response = await call_with_timeout(
            self.provider.respond(
                system_prompt=system_prompt,
                messages=list(outcome.transcript),
                tools=self.tools,
                max_tokens=self.max_tokens,
            ),
            self.call_timeout,
            "Reasoning provider",
        )
        outcome.provider_calls += 1
        self._account(response.usage, outcome, context)
        return response

    def _account(self, usage: LLMUsage, outcome: LoopOutcome, context: ExecutionContext) -> None:
        outcome.input_tokens += usage.input_tokens
        outcome.output_tokens += usage.output_tokens
        context.add_tokens(self.tier, usage.total)

    async def run(
        self, system_prompt: str, user_prompt: str, context: ExecutionContext
    ) -> LoopOutcome:
        """
        Run the loop to a terminal state

        Provider errors (including timeouts) propagate to the caller; tool
        errors never do.
        """
        outcome = LoopOutcome(
            state=LoopState.REQUESTING,
            output="",
            transcript=[Message(role="user", content=user_prompt)],
        )
        response = ReasoningResponse(content=[], stop_reason="")

        while outcome.state not in (LoopState.DONE, LoopState.LIMIT_REACHED):
            if outcome.state == LoopState.REQUESTING:
                response = await self._request(system_prompt, outcome, context)

                if not response.wants_tools or not response.tool_calls:
                    outcome.transcript.append(Message(role="assistant", content=response.content))
                    outcome.output = response.text
                    outcome.state = LoopState.DONE
                elif outcome.tool_turns >= self.max_tool_calls:
                    logger.warning(
                        f"Run {context.run_id}: tool call limit ({self.max_tool_calls}) reached"
                    )
                    outcome.transcript.append(Message(role="assistant", content=response.content))
                    outcome.output = TOOL_LIMIT_NOTICE
                    outcome.state = LoopState.LIMIT_REACHED
                else:
                    outcome.state = LoopState.EXECUTING_TOOLS

            elif outcome.state == LoopState.EXECUTING_TOOLS:
                results: list[ContentBlock] = []
                for call in response.tool_calls:
                    logger.info(f"Run {context.run_id}: model called {call.name}")
                    results.append(await self.tool_executor.execute_isolated(call, context))
                    outcome.tool_invocations += 1

                outcome.transcript.append(Message(role="assistant", content=response.content))
                outcome.transcript.append(Message(role="user", content=results))
                outcome.tool_turns += 1
                outcome.state = LoopState.REQUESTING

        logger.info(
            f"Run {context.run_id}: reasoning loop finished in state {outcome.state.value} "
            f"after {outcome.provider_calls} provider call(s)"
        )
        return outcome
