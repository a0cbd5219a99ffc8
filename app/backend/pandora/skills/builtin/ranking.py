"""
TopNWithSummary Tool

Ranks records and keeps only the top N, collapsing the rest into a count and
a value total, so large record sets reach model-backed steps pre-filtered.
"""

from typing import TYPE_CHECKING, Any

from pandora.engine.templates import UNRESOLVED, resolve_variable
from pandora.skills.base import BaseTool, ToolError, ToolParameter, build_parameters_schema

if TYPE_CHECKING:
    from pandora.engine.context import ExecutionContext


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_flag(value: Any, default: bool) -> bool:
    """Read a boolean argument; models sometimes send "false" or "0" as strings"""
    if value is None:
        return default
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in ("true", "1", "yes"):
            return True
        if normalized in ("false", "0", "no", ""):
            return False
        raise ToolError(f"Invalid boolean value: {value}")
    return bool(value)


def top_n_with_summary(
    items: list[dict[str, Any]],
    n: int,
    sort_by: str = "amount",
    value_field: str = "amount",
    descending: bool = True,
) -> dict[str, Any]:
    """Return the top `n` items by `sort_by` plus a summary of the remainder"""
    if n < 0:
        raise ToolError("n cannot be negative")

    ranked = sorted(items, key=lambda item: _number(item.get(sort_by)), reverse=descending)
    rest = ranked[n:]
    return {
        "top_items": ranked[:n],
        "remaining": {
            "count": len(rest),
            "total_value": round(sum(_number(item.get(value_field)) for item in rest)),
        },
        "total": len(ranked),
    }


class TopNWithSummaryTool(BaseTool):
    """
    Tool that ranks records by a numeric field

    Parameters:
        items (optional): Records to rank
        source (optional): Dotted path to a list in an earlier step's result,
            used when `items` is not given
        n (optional): How many records to keep (default 20)
        sort_by / value_field (optional): Field names, default "amount"
        descending (optional): Sort order (default true)
    """

    name = "top_n_with_summary"
    description = (
        "Rank records by a numeric field and return the top N plus a count and total "
        "value of the remaining records"
    )
    parameters = build_parameters_schema(
        [
            ToolParameter(name="items", type="array", description="Records to rank"),
            ToolParameter(
                name="source",
                type="string",
                description="Dotted path to a list in an earlier step result, e.g. 'deals.items'",
            ),
            ToolParameter(
                name="n", type="integer", description="Number of records to keep", default=20
            ),
            ToolParameter(
                name="sort_by", type="string", description="Field to rank by", default="amount"
            ),
            ToolParameter(
                name="value_field",
                type="string",
                description="Field summed for the remainder",
                default="amount",
            ),
            ToolParameter(
                name="descending", type="boolean", description="Sort descending", default=True
            ),
        ]
    )

    async def execute(self, args: dict[str, Any], context: "ExecutionContext") -> Any:
        items = args.get("items")
        if items is None and args.get("source"):
            items = resolve_variable(args["source"], context.step_results, {})
            if items is UNRESOLVED:
                raise ToolError(f"Source '{args['source']}' has no result in this run")

        if not isinstance(items, list):
            raise ToolError("top_n_with_summary needs a list of records")

        return top_n_with_summary(
            [item for item in items if isinstance(item, dict)],
            n=int(args.get("n", 20)),
            sort_by=args.get("sort_by", "amount"),
            value_field=args.get("value_field", "amount"),
            descending=parse_flag(args.get("descending"), default=True),
        )
