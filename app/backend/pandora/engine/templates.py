"""
Prompt template rendering

Placeholders look like ``{{ path.to.value }}``. A path is resolved against the
run's step results first and then against the business context. A path that
resolves nowhere is left in the prompt verbatim so the model can see what was
missing.

Resolved values are stringified with fixed size limits so a single large step
result cannot blow up a prompt:

- arrays keep the first ARRAY_SUMMARY_LIMIT entries, each reduced to
  SUMMARY_FIELDS, followed by a count of the omitted entries
- objects are serialized as JSON and cut at OBJECT_CHAR_LIMIT characters
"""

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any, Final

PLACEHOLDER_PATTERN: Final = re.compile(r"\{\{([^}]+)\}\}")

ARRAY_SUMMARY_LIMIT: Final = 20
OBJECT_CHAR_LIMIT: Final = 8000
FALLBACK_FIELD_LIMIT: Final = 8
TRUNCATION_MARKER: Final = "\n... [truncated]"
NESTED_PLACEHOLDER: Final = "[object]"

SUMMARY_FIELDS: Final[tuple[str, ...]] = (
    "name",
    "deal_name",
    "dealName",
    "dealId",
    "id",
    "amount",
    "stage",
    "stage_normalized",
    "close_date",
    "owner",
    "deal_risk",
    "health_score",
    "velocity_score",
    "days_in_stage",
    "last_activity_date",
    "total",
    "count",
    "type",
    "risk_level",
    "likely_cause",
    "has_expansion_contacts",
    "recommended_action",
    "root_cause",
    "suggested_action",
    "contactCount",
    "contactNames",
)


class _Unresolved:
    """Marker returned when a placeholder path resolves nowhere"""

    _instance: "_Unresolved | None" = None

    def __new__(cls) -> "_Unresolved":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False


UNRESOLVED: Final = _Unresolved()


def placeholder_paths(template: str) -> list[str]:
    """Return the trimmed paths of every placeholder in a template, in order"""
    return [match.group(1).strip() for match in PLACEHOLDER_PATTERN.finditer(template)]


def _traverse(root: Any, parts: list[str]) -> Any:
    current = root
    for part in parts:
        if isinstance(current, Mapping):
            if part not in current:
                return UNRESOLVED
            current = current[part]
        elif isinstance(current, Sequence) and not isinstance(current, str | bytes):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return UNRESOLVED
        else:
            return UNRESOLVED
    return current


def resolve_variable(
    path: str, step_results: Mapping[str, Any], business_context: Mapping[str, Any]
) -> Any:
    """
    Resolve a dotted path against step results, then the business context

    Integer segments index into lists. Returns UNRESOLVED when neither source
    contains the full path; a value of None counts as resolved.
    """
    parts = path.strip().split(".")
    value = _traverse(step_results, parts)
    if value is UNRESOLVED:
        value = _traverse(business_context, parts)
    return value


def summarize_item(item: Any) -> Any:
    """Reduce a structured array entry to its important fields"""
    if not isinstance(item, Mapping):
        return item

    summary = {key: item[key] for key in SUMMARY_FIELDS if key in item}
    if summary:
        return summary

    fallback: dict[str, Any] = {}
    for key, value in list(item.items())[:FALLBACK_FIELD_LIMIT]:
        fallback[key] = NESTED_PLACEHOLDER if isinstance(value, Mapping | list | tuple) else value
    return fallback


def _to_json(value: Any) -> str:
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def stringify(value: Any) -> str:
    """Render a resolved value for inclusion in a prompt"""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, list | tuple):
        summarized = [summarize_item(item) for item in value[:ARRAY_SUMMARY_LIMIT]]
        rendered = _to_json(summarized)
        if len(value) > ARRAY_SUMMARY_LIMIT:
            omitted = len(value) - ARRAY_SUMMARY_LIMIT
            rendered += f"\n... and {omitted} more items ({len(value)} total)"
        return rendered
    if isinstance(value, Mapping):
        rendered = _to_json(dict(value))
        if len(rendered) > OBJECT_CHAR_LIMIT:
            return rendered[:OBJECT_CHAR_LIMIT] + TRUNCATION_MARKER
        return rendered
    return str(value)


def render_template(
    template: str, step_results: Mapping[str, Any], business_context: Mapping[str, Any]
) -> str:
    """Replace every placeholder; unresolved ones are kept as written"""

    def replace(match: re.Match[str]) -> str:
        value = resolve_variable(match.group(1), step_results, business_context)
        if value is UNRESOLVED:
            return match.group(0)
        return stringify(value)

    return PLACEHOLDER_PATTERN.sub(replace, template)
