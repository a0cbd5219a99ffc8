"""
Registries for tools and skill definitions

Both registries are plain objects populated at startup and handed to the
runtime, so each runtime (and each test) can own an isolated set.
"""

from collections.abc import Iterable
from typing import Any

from pandora.engine.errors import ToolNotFoundError
from pandora.llm.types import ToolSchema
from pandora.schemas.skill import Skill
from pandora.skills.base import BaseTool


class ToolRegistry:
    """
    Registry for tools

    Maintains a collection of tools and provides methods for:
    - Registering new tools
    - Retrieving tools by name
    - Listing all available tools
    - Building a subset offered to a single reasoning step
    """

    def __init__(self, tools: Iterable[BaseTool] | None = None) -> None:
        """Initialize registry, optionally with an initial set of tools"""
        self._tools: dict[str, BaseTool] = {}
        for tool in tools or ():
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        """
        Register a tool in the registry

        Args:
            tool: The tool to register

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(
                f"Tool '{tool.name}' is already registered. Use unregister() first to replace it."
            )

        self._tools[tool.name] = tool

    def unregister(self, tool_name: str) -> None:
        """
        Remove a tool from the registry

        Note:
            Does not raise an error if tool doesn't exist (idempotent)
        """
        self._tools.pop(tool_name, None)

    def get_tool(self, tool_name: str) -> BaseTool | None:
        """Retrieve a tool by name, or None if not registered"""
        return self._tools.get(tool_name)

    def require(self, tool_name: str) -> BaseTool:
        """
        Retrieve a tool by name

        Raises:
            ToolNotFoundError: If the tool is not registered
        """
        tool = self._tools.get(tool_name)
        if tool is None:
            raise ToolNotFoundError(tool_name)
        return tool

    def subset(self, tool_names: Iterable[str]) -> "ToolRegistry":
        """
        Build a registry holding only the named tools, in the given order

        Raises:
            ToolNotFoundError: If any name is not registered
        """
        return ToolRegistry(self.require(name) for name in dict.fromkeys(tool_names))

    def list_tools(self) -> list[dict[str, Any]]:
        """List all registered tools with their metadata"""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            }
            for tool in self._tools.values()
        ]

    def get_tool_definitions(self) -> list[ToolSchema]:
        """Get all tools as provider-agnostic tool schemas"""
        return [tool.to_tool_schema() for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._tools


class SkillRegistry:
    """Registry of validated skill definitions, keyed by skill id"""

    def __init__(self) -> None:
        self._skills: dict[str, Skill] = {}

    def register(self, skill: Skill) -> None:
        """
        Register a skill definition

        Raises:
            ValueError: If a skill with the same id is already registered
        """
        if skill.id in self._skills:
            raise ValueError(f"Skill '{skill.id}' is already registered")
        self._skills[skill.id] = skill

    def load(self, definition: dict[str, Any]) -> Skill:
        """
        Validate a raw definition (e.g. parsed from JSON) and register it

        Raises:
            pydantic.ValidationError: If the definition is invalid
            ValueError: If the skill id is already registered
        """
        skill = Skill.model_validate(definition)
        self.register(skill)
        return skill

    def get_skill(self, skill_id: str) -> Skill | None:
        return self._skills.get(skill_id)

    def list_skills(self) -> list[Skill]:
        return list(self._skills.values())

    def __len__(self) -> int:
        return len(self._skills)

    def __contains__(self, skill_id: str) -> bool:
        return skill_id in self._skills
