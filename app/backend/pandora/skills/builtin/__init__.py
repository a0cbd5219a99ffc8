"""
Built-in tools

Pure computation tools available to every workspace.
"""

from pandora.skills.builtin.ranking import TopNWithSummaryTool, top_n_with_summary
from pandora.skills.builtin.time_windows import (
    LastRunLookup,
    ResolveTimeWindowsTool,
    resolve_time_windows,
)
from pandora.skills.registry import ToolRegistry


def register_builtin_tools(
    registry: ToolRegistry, last_run_lookup: LastRunLookup | None = None
) -> ToolRegistry:
    """Register every built-in tool that is not already present.

    `last_run_lookup` lets resolve_time_windows find the previous completed
    run when a skill asks for the since_last_run window.
    """
    tools = (ResolveTimeWindowsTool(last_run_lookup=last_run_lookup), TopNWithSummaryTool())
    for tool in tools:
        if tool.name not in registry:
            registry.register(tool)
    return registry


__all__ = [
    "ResolveTimeWindowsTool",
    "TopNWithSummaryTool",
    "register_builtin_tools",
    "resolve_time_windows",
    "top_n_with_summary",
]
