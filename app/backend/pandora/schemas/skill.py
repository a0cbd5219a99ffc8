"""Skill definition schemas.

A skill is a declarative, versioned graph of steps. Each step is tagged with
the execution tier that runs it. Definitions are validated once at load time
and are immutable afterwards.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_MAX_TOOL_CALLS = 10

SkillOutputFormat = Literal["slack", "markdown", "json", "structured"]


class StepTier(str, Enum):
    """Execution tiers, cheapest first."""

    COMPUTE = "compute"  # Deterministic function call, no model
    CLASSIFY = "classify"  # Bulk classification on the secondary model
    REASON = "reason"  # Multi-turn reasoning with tool use


class SkillStep(BaseModel):
    """One unit of work inside a skill."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Step identifier, unique within the skill")
    name: str | None = Field(None, description="Human-readable step name")
    tier: StepTier
    depends_on: tuple[str, ...] = Field(
        default=(), description="Ids of steps that must finish before this one"
    )
    output_key: str = Field(
        ..., min_length=1, description="Key the step result is stored under in the run context"
    )

    # compute
    compute_fn: str | None = Field(None, description="Tool name to invoke for compute steps")
    compute_args: dict[str, Any] = Field(default_factory=dict)

    # classify / reason
    prompt: str | None = Field(None, description="Prompt template with {{path}} placeholders")
    output_schema: dict[str, Any] | None = Field(
        None, description="JSONSchema requested from classify steps"
    )
    tools: tuple[str, ...] = Field(default=(), description="Tools offered to reason steps")
    max_tool_calls: int = Field(DEFAULT_MAX_TOOL_CALLS, ge=0)
    max_tokens: int | None = Field(None, gt=0)

    @model_validator(mode="after")
    def validate_tier_payload(self) -> "SkillStep":
        """Ensure the payload required by the step's tier is present."""
        if self.tier == StepTier.COMPUTE and not self.compute_fn:
            raise ValueError(f"Compute step '{self.id}' requires compute_fn")
        if self.tier in (StepTier.CLASSIFY, StepTier.REASON) and not self.prompt:
            raise ValueError(f"{self.tier.value.capitalize()} step '{self.id}' requires a prompt")
        return self

    @property
    def display_name(self) -> str:
        return self.name or self.id


class Skill(BaseModel):
    """A named, versioned definition of steps, required tools and context."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Skill identifier, e.g. 'pipeline-hygiene'")
    name: str
    description: str = ""
    version: str = "1.0.0"
    category: str | None = None
    steps: tuple[SkillStep, ...] = Field(..., min_length=1)
    required_tools: tuple[str, ...] = ()
    optional_tools: tuple[str, ...] = ()
    required_context: tuple[str, ...] = ()
    time_config: dict[str, Any] = Field(default_factory=dict)
    output_format: SkillOutputFormat = "markdown"

    @model_validator(mode="after")
    def validate_unique_keys(self) -> "Skill":
        """Step ids and output keys must be unique so no result is ever overwritten."""
        seen_ids: set[str] = set()
        seen_keys: set[str] = set()
        for step in self.steps:
            if step.id in seen_ids:
                raise ValueError(f"Duplicate step id '{step.id}' in skill '{self.id}'")
            if step.output_key in seen_keys:
                raise ValueError(f"Duplicate output key '{step.output_key}' in skill '{self.id}'")
            seen_ids.add(step.id)
            seen_keys.add(step.output_key)
        return self

    def get_step(self, step_id: str) -> SkillStep | None:
        return next((step for step in self.steps if step.id == step_id), None)


class SkillSummary(BaseModel):
    """Schema for GET /skills list entries."""

    id: str
    name: str
    description: str
    version: str
    category: str | None = None
    output_format: str
    step_count: int = Field(..., ge=1)
    tiers: list[StepTier] = Field(..., description="Distinct tiers used by the skill")

    @classmethod
    def from_skill(cls, skill: Skill) -> "SkillSummary":
        tiers: list[StepTier] = []
        for step in skill.steps:
            if step.tier not in tiers:
                tiers.append(step.tier)
        return cls(
            id=skill.id,
            name=skill.name,
            description=skill.description,
            version=skill.version,
            category=skill.category,
            output_format=skill.output_format,
            step_count=len(skill.steps),
            tiers=tiers,
        )
