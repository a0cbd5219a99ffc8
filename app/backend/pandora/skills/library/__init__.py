"""
Built-in skill library

Skill definitions shipped with the runtime, registered at startup.
"""

from pandora.skills.library.pipeline_hygiene import PIPELINE_HYGIENE, SKILL_LIBRARY
from pandora.skills.registry import SkillRegistry


def load_skill_library(registry: SkillRegistry) -> SkillRegistry:
    """Validate and register every library skill"""
    for definition in SKILL_LIBRARY:
        registry.load(definition)
    return registry


__all__ = ["PIPELINE_HYGIENE", "SKILL_LIBRARY", "load_skill_library"]
