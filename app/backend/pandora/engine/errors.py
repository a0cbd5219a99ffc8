"""
Error taxonomy for the skill runtime

Step-scoped errors are caught at the per-step boundary and recorded in the
run's error log. Anything else raised while a run is in progress is fatal to
that run.
"""


class EngineError(Exception):
    """Base class for all runtime errors"""

    pass


class StepExecutionError(EngineError):
    """Failure scoped to a single step; scheduling continues with the next step"""

    pass


class ToolNotFoundError(StepExecutionError):
    """Raised when a step references a tool that is not registered"""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool not found: {tool_name}")


class StepConfigurationError(StepExecutionError):
    """Raised when a step definition cannot be executed as declared"""

    pass


class ProviderError(StepExecutionError):
    """Raised when a model provider call fails or times out"""

    pass


class InputBudgetExceededError(StepExecutionError):
    """Raised when a model-backed step would receive too much input"""

    pass


class CyclicDependencyError(EngineError):
    """Raised when a skill's step dependencies form a cycle"""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Cyclic step dependency: {' -> '.join(cycle)}")


class MissingToolsError(EngineError):
    """Raised when a skill requires tools the registry does not provide"""

    def __init__(self, skill_id: str, tool_names: list[str]):
        self.skill_id = skill_id
        self.tool_names = tool_names
        super().__init__(
            f"Skill '{skill_id}' requires unregistered tools: {', '.join(tool_names)}"
        )
