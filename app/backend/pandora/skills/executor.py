"""
Tool Executor for invoking tools from a registry

Handles tool lookup, error isolation, logging and result serialization for
the reasoning loop, where a failing tool must never abort the loop.
"""

import json
import logging
from typing import TYPE_CHECKING, Any

from pandora.engine.errors import ToolNotFoundError
from pandora.llm.types import ToolResultBlock, ToolUseBlock
from pandora.skills.registry import ToolRegistry

if TYPE_CHECKING:
    from pandora.engine.context import ExecutionContext

logger = logging.getLogger(__name__)


def serialize_tool_output(value: Any) -> str:
    """Serialize a tool result for the model; strings pass through unchanged"""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


class ToolExecutor:
    """
    Executes tools from a registry

    Provides two interfaces:
    - execute(): raises on a missing tool and propagates tool failures
    - execute_isolated(): converts every failure into an error payload
    """

    def __init__(self, registry: ToolRegistry) -> None:
        """
        Initialize executor with a tool registry

        Args:
            registry: The tool registry to use for tool lookup
        """
        self.registry = registry

    async def execute(
        self, tool_name: str, args: dict[str, Any], context: "ExecutionContext"
    ) -> Any:
        """
        Execute a tool by name with the given arguments

        Raises:
            ToolNotFoundError: If the tool is not found in the registry
        """
        tool = self.registry.require(tool_name)

        logger.info(f"Executing tool: {tool_name} with args: {args}")
        result = await tool.execute(args, context)
        logger.info(f"Tool {tool_name} completed")
        return result

    async def execute_isolated(
        self, call: ToolUseBlock, context: "ExecutionContext"
    ) -> ToolResultBlock:
        """
        Execute one model-requested tool call, never raising

        A missing tool becomes {"error": "Tool not found: X"} and any exception
        becomes {"error": <message>}; both are flagged is_error.
        """
        context.record_tool_call()
        try:
            result = await self.execute(call.name, call.input, context)
        except ToolNotFoundError as e:
            logger.warning(f"Model requested unknown tool: {call.name}")
            return ToolResultBlock(
                tool_use_id=call.id,
                content=json.dumps({"error": str(e)}),
                is_error=True,
            )
        except Exception as e:
            logger.error(f"Tool {call.name} failed: {type(e).__name__}: {e}", exc_info=True)
            return ToolResultBlock(
                tool_use_id=call.id,
                content=json.dumps({"error": str(e) or type(e).__name__}),
                is_error=True,
            )

        return ToolResultBlock(tool_use_id=call.id, content=serialize_tool_output(result))
