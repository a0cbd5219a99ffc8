"""
Per-run execution context

One ExecutionContext is created by the runtime for each skill run. It holds
the results of completed steps, the read-only business context, token and
tool-call counters and the ordered error log. It is discarded when the run
finishes.
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from pandora.schemas.run import StepErrorRecord, TokenUsageByTier
from pandora.schemas.skill import StepTier

CONTEXT_SECTIONS = (
    "business_model",
    "team_structure",
    "goals_and_targets",
    "definitions",
    "operational_maturity",
)


def freeze_business_context(business_context: Mapping[str, Any] | None) -> Mapping[str, Any]:
    """Deep-copy the business context and expose it through a read-only view"""
    return MappingProxyType(copy.deepcopy(dict(business_context or {})))


@dataclass
class ExecutionContext:
    run_id: str
    skill_id: str
    workspace_id: str
    business_context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    step_results: dict[str, Any] = field(default_factory=dict)
    token_usage: dict[StepTier, int] = field(
        default_factory=lambda: {tier: 0 for tier in StepTier}
    )
    tool_call_count: int = 0
    errors: list[StepErrorRecord] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def store_result(self, output_key: str, value: Any) -> None:
        """
        Store a step result under its output key

        Raises:
            ValueError: If the key was already written during this run
        """
        if output_key in self.step_results:
            raise ValueError(f"Output key '{output_key}' already holds a step result")
        self.step_results[output_key] = value

    def add_tokens(self, tier: StepTier, count: int) -> None:
        if count < 0:
            raise ValueError("Token count cannot be negative")
        self.token_usage[tier] += count

    def record_tool_call(self) -> None:
        self.tool_call_count += 1

    def record_error(self, step: str, error: str) -> None:
        self.errors.append(StepErrorRecord(step=step, error=error))

    def tokens_used(self) -> int:
        return sum(self.token_usage.values())

    def usage_by_tier(self) -> TokenUsageByTier:
        return TokenUsageByTier(**{tier.value: count for tier, count in self.token_usage.items()})
