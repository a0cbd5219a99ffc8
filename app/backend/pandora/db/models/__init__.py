from pandora.db.models.context_layer import ContextLayer
from pandora.db.models.skill_run import SkillRun, SkillRunStatus

__all__ = [
    "ContextLayer",
    "SkillRun",
    "SkillRunStatus",
]
