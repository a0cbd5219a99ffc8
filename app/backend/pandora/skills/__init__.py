"""
Tools and skill definitions

Tools are the deterministic capabilities invoked by compute steps and offered
to the reasoning model; skills are the step graphs the runtime executes.
"""

from pandora.skills.base import BaseTool, FunctionTool, ToolError, ToolParameter
from pandora.skills.executor import ToolExecutor
from pandora.skills.registry import SkillRegistry, ToolRegistry

__all__ = [
    "BaseTool",
    "FunctionTool",
    "ToolError",
    "ToolParameter",
    "ToolExecutor",
    "SkillRegistry",
    "ToolRegistry",
]
