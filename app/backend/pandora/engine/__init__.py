"""
Skill execution engine

Import SkillRuntime from pandora.engine.runtime; this package only re-exports
the leaf modules so tool and provider code can import them without cycles.
"""

from pandora.engine.context import ExecutionContext
from pandora.engine.errors import (
    CyclicDependencyError,
    EngineError,
    InputBudgetExceededError,
    MissingToolsError,
    ProviderError,
    StepConfigurationError,
    StepExecutionError,
    ToolNotFoundError,
)
from pandora.engine.scheduler import order_steps
from pandora.engine.templates import UNRESOLVED, render_template, resolve_variable, stringify

__all__ = [
    "CyclicDependencyError",
    "EngineError",
    "ExecutionContext",
    "InputBudgetExceededError",
    "MissingToolsError",
    "ProviderError",
    "StepConfigurationError",
    "StepExecutionError",
    "ToolNotFoundError",
    "UNRESOLVED",
    "order_steps",
    "render_template",
    "resolve_variable",
    "stringify",
]
