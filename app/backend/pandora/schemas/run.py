"""Run result schemas returned by the skill runtime and the runs API."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pandora.schemas.skill import StepTier


class RunStatus(str, Enum):
    """Terminal run status."""

    COMPLETED = "completed"  # Every step succeeded
    PARTIAL = "partial"  # The run finished but at least one step failed
    FAILED = "failed"  # The run aborted before finishing


class StepStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class TokenUsageByTier(BaseModel):
    """Tokens consumed per execution tier."""

    compute: int = 0
    classify: int = 0
    reason: int = 0

    @property
    def total(self) -> int:
        return self.compute + self.classify + self.reason


class StepErrorRecord(BaseModel):
    """One entry of the run error log."""

    step: str
    error: str


class StepOutcome(BaseModel):
    """Execution record for a single step."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    status: StepStatus
    tier: StepTier
    started_at: datetime
    finished_at: datetime
    duration_ms: int = Field(..., ge=0)
    token_usage: int = Field(0, ge=0)
    error: str | None = None


class RunResult(BaseModel):
    """Immutable summary of one skill run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    skill_id: str
    workspace_id: str
    status: RunStatus
    output: Any = None
    output_format: str
    steps: list[StepOutcome] = Field(default_factory=list)
    step_data: dict[str, Any] = Field(default_factory=dict)
    total_token_usage: TokenUsageByTier = Field(default_factory=TokenUsageByTier)
    tool_call_count: int = 0
    total_duration_ms: int = Field(0, ge=0)
    completed_at: datetime
    errors: list[StepErrorRecord] = Field(default_factory=list)


class RunSkillRequest(BaseModel):
    """Request schema for POST /workspaces/{workspace_id}/skills/{skill_id}/runs."""

    params: dict[str, Any] = Field(
        default_factory=dict, description="Run parameters, e.g. a 'time_config' override"
    )


class SkillRunResponse(BaseModel):
    """Schema for run ledger entries returned by GET /skill-runs/{run_id}."""

    run_id: str
    skill_id: str
    workspace_id: str
    status: str
    output: Any = None
    error: str | None = None
    token_usage: dict[str, int] | None = None
    started_at: datetime
    completed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
