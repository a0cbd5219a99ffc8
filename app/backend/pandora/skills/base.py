"""
Base classes for tools

Tools are the data-fetch and computation capabilities that compute steps
invoke directly and that reasoning steps offer to the model. The runtime only
knows a tool by its name, description, parameter schema and execute method.
"""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pandora.llm.types import ToolSchema

if TYPE_CHECKING:
    from pandora.engine.context import ExecutionContext


class ToolError(Exception):
    """Raised by tool implementations when they cannot produce a result"""

    pass


@dataclass
class ToolParameter:
    """One argument of a tool, rendered into the tool's JSONSchema"""

    name: str
    type: str  # JSONSchema type
    description: str
    required: bool = False
    default: Any = None
    enum: tuple[str, ...] = ()

    def to_jsonschema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.default is not None:
            schema["default"] = self.default
        return schema


def build_parameters_schema(parameters: list[ToolParameter]) -> dict[str, Any]:
    """Build an object JSONSchema from a list of parameters"""
    return {
        "type": "object",
        "properties": {param.name: param.to_jsonschema() for param in parameters},
        "required": [param.name for param in parameters if param.required],
    }


class BaseTool(ABC):
    """
    Abstract base class for all tools

    Attributes:
        name: Unique identifier for the tool
        description: What the tool does, written for the model
        parameters: JSONSchema definition of the tool's arguments
    """

    name: str
    description: str
    parameters: dict[str, Any] = {"type": "object", "properties": {}, "required": []}

    @abstractmethod
    async def execute(self, args: dict[str, Any], context: "ExecutionContext") -> Any:
        """
        Execute the tool

        Args:
            args: Arguments matching the parameters schema
            context: Execution context of the current run (read-only for tools)

        Returns:
            Any JSON-serializable structured value

        Raises:
            ToolError: If the tool cannot produce a result
        """
        pass

    def to_tool_schema(self) -> ToolSchema:
        """Describe the tool for a model provider"""
        return ToolSchema(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )


ToolFunction = Callable[..., Any]


class FunctionTool(BaseTool):
    """Adapts a plain (sync or async) function into a tool"""

    def __init__(
        self,
        name: str,
        description: str,
        fn: ToolFunction,
        parameters: list[ToolParameter] | dict[str, Any] | None = None,
    ):
        self.name = name
        self.description = description
        self._fn = fn
        if isinstance(parameters, list):
            self.parameters = build_parameters_schema(parameters)
        elif parameters is not None:
            self.parameters = parameters

    async def execute(self, args: dict[str, Any], context: "ExecutionContext") -> Any:
        result = self._fn(args, context)
        if inspect.isawaitable(result):
            result = await result
        return result
