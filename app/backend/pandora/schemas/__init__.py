from pandora.schemas.run import (
    RunResult,
    RunSkillRequest,
    RunStatus,
    SkillRunResponse,
    StepErrorRecord,
    StepOutcome,
    StepStatus,
    TokenUsageByTier,
)
from pandora.schemas.skill import Skill, SkillStep, SkillSummary, StepTier

__all__ = [
    "Skill",
    "SkillStep",
    "SkillSummary",
    "StepTier",
    "RunResult",
    "RunSkillRequest",
    "RunStatus",
    "SkillRunResponse",
    "StepErrorRecord",
    "StepOutcome",
    "StepStatus",
    "TokenUsageByTier",
]
