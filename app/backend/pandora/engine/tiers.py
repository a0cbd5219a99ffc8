"""
Tier executors and the router that dispatches steps to them

Each executor runs one step and returns its result, or raises a step-scoped
error that the runtime records without stopping the run.
"""

import json
import logging
import math
import re
from collections.abc import Mapping
from typing import Any, Protocol

from pandora.engine.context import ExecutionContext
from pandora.engine.errors import InputBudgetExceededError, StepConfigurationError
from pandora.engine.reasoning import ReasoningLoop
from pandora.engine.templates import placeholder_paths, render_template, resolve_variable
from pandora.llm.providers import ClassificationProvider, ReasoningProvider, call_with_timeout
from pandora.schemas.skill import SkillStep, StepTier
from pandora.skills.executor import ToolExecutor
from pandora.skills.registry import ToolRegistry

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def estimate_tokens(text: str) -> int:
    """Rough token estimate used by the input guardrails (4 characters per token)"""
    return math.ceil(len(text) / 4)


class InputGuardrails:
    """
    Rejects model-backed steps whose input is too large

    - a rendered prompt above `warn_threshold` estimated tokens is logged
    - a rendered prompt above `token_limit` fails the step
    - a classify step referencing a list longer than `classify_max_items` fails
    """

    def __init__(
        self,
        warn_threshold: int = 8000,
        token_limit: int = 20000,
        classify_max_items: int = 30,
    ) -> None:
        self.warn_threshold = warn_threshold
        self.token_limit = token_limit
        self.classify_max_items = classify_max_items

    def check(self, step: SkillStep, rendered_prompt: str, context: ExecutionContext) -> None:
        if step.tier == StepTier.CLASSIFY and step.prompt:
            for path in placeholder_paths(step.prompt):
                value = resolve_variable(path, context.step_results, {})
                if isinstance(value, list | tuple) and len(value) > self.classify_max_items:
                    raise InputBudgetExceededError(
                        f"Classify step '{step.id}' receives array '{path}' with {len(value)} "
                        f"items (max {self.classify_max_items}). Add a compute step to "
                        f"filter or rank before classification."
                    )

        estimated = estimate_tokens(rendered_prompt)
        if estimated > self.token_limit:
            raise InputBudgetExceededError(
                f"{step.tier.value} step '{step.id}' input exceeds the {self.token_limit} token "
                f"limit ({estimated} estimated). Add compute aggregation to reduce data volume."
            )
        if estimated > self.warn_threshold:
            logger.warning(
                f"{step.tier.value} step '{step.id}' input is {estimated} estimated tokens "
                f"(target <{self.warn_threshold})"
            )


def _fact(value: Any) -> str:
    return "unknown" if value in (None, "") else str(value)


def build_system_prompt(step: SkillStep, business_context: Mapping[str, Any]) -> str:
    """System prompt shared by classify and reason steps"""
    business_model = business_context.get("business_model") or {}
    goals = business_context.get("goals_and_targets") or {}
    acv_range = business_model.get("acv_range") or {}

    lines = ["You are analyzing GTM data for a workspace.", "", "Business Context:"]
    if business_model.get("company_name"):
        lines.append(f"- Company: {business_model['company_name']}")
    if business_model.get("product_description"):
        lines.append(f"- Product: {business_model['product_description']}")
    lines.extend(
        [
            f"- GTM Motion: {_fact(business_model.get('gtm_motion'))}",
            f"- Avg Deal Size: ${_fact(acv_range.get('avg'))}",
            f"- Sales Cycle: {_fact(business_model.get('sales_cycle_days'))} days",
            f"- Revenue Target: ${_fact(goals.get('revenue_target'))}",
            f"- Pipeline Coverage Target: {_fact(goals.get('pipeline_coverage_target'))}x",
            "",
            f"Your task: {step.display_name}",
            "",
            "Important:",
            "- Be specific with deal names and numbers",
            "- Use the actual data rather than generalizing",
            "- Focus on actionable insights",
        ]
    )
    return "\n".join(lines)


def schema_instruction(schema: Mapping[str, Any]) -> str:
    return (
        "\n\nRespond with valid JSON only, matching this JSON schema:\n"
        f"{json.dumps(schema, indent=2)}"
    )


def _unwrap_array(parsed: dict[str, Any], schema: Mapping[str, Any], step_id: str) -> Any:
    """Recover an array from an object reply when the schema asked for an array"""
    expected = list((schema.get("items") or {}).get("required") or [])
    candidates = [(key, value) for key, value in parsed.items() if isinstance(value, list) and value]

    best_key: str | None = None
    if expected:
        best_score = -1
        for key, value in candidates:
            sample = value[0]
            if isinstance(sample, dict):
                score = sum(1 for name in expected if name in sample)
                if score > best_score:
                    best_score = score
                    best_key = key

    if best_key is None and candidates:
        best_key = max(candidates, key=lambda item: len(item[1]))[0]

    if best_key is not None:
        logger.info(f"Step {step_id}: unwrapped object reply to array via key '{best_key}'")
        return parsed[best_key]

    if expected:
        matched = sum(1 for name in expected if name in parsed)
        if matched >= math.ceil(len(expected) / 2):
            logger.info(f"Step {step_id}: wrapped single object reply as array")
            return [parsed]

    logger.warning(f"Step {step_id}: expected an array but got an object")
    return parsed


def parse_structured_reply(text: str, schema: Mapping[str, Any], step_id: str) -> Any:
    """
    Parse a JSON reply, tolerating Markdown code fences

    Returns the raw text when the reply is not valid JSON.
    """
    candidate = text.strip()
    fenced = CODE_FENCE_PATTERN.match(candidate)
    if fenced:
        candidate = fenced.group(1)

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        logger.warning(
            f"Step {step_id}: could not parse JSON reply, returning raw text ({len(text)} chars)"
        )
        return text

    if schema.get("type") == "array" and isinstance(parsed, dict):
        parsed = _unwrap_array(parsed, schema, step_id)
    return parsed


class StepExecutor(Protocol):
    async def execute(self, step: SkillStep, context: ExecutionContext) -> Any: ...


class ComputeExecutor:
    """Invokes the step's compute function from the tool registry"""

    def __init__(self, tool_executor: ToolExecutor) -> None:
        self.tool_executor = tool_executor

    async def execute(self, step: SkillStep, context: ExecutionContext) -> Any:
        if not step.compute_fn:
            raise StepConfigurationError(f"Compute step '{step.id}' has no compute_fn")
        return await self.tool_executor.execute(step.compute_fn, dict(step.compute_args), context)


class ClassifyExecutor:
    """Single call to the classification provider, optionally schema-guided"""

    def __init__(
        self,
        provider: ClassificationProvider,
        guardrails: InputGuardrails | None = None,
        call_timeout: float | None = None,
    ) -> None:
        self.provider = provider
        self.guardrails = guardrails
        self.call_timeout = call_timeout

    async def execute(self, step: SkillStep, context: ExecutionContext) -> Any:
        prompt = render_template(step.prompt or "", context.step_results, context.business_context)
        if self.guardrails is not None:
            self.guardrails.check(step, prompt, context)
        if step.output_schema:
            prompt += schema_instruction(step.output_schema)

        response = await call_with_timeout(
            self.provider.classify(
                prompt,
                schema=step.output_schema,
                system_prompt=build_system_prompt(step, context.business_context),
            ),
            self.call_timeout,
            "Classification provider",
        )
        context.add_tokens(StepTier.CLASSIFY, response.usage.total)

        if not step.output_schema:
            return response.text
        return parse_structured_reply(response.text, step.output_schema, step.id)


class ReasonExecutor:
    """Runs a bounded reasoning loop with the step's tool subset"""

    def __init__(
        self,
        provider: ReasoningProvider,
        tool_registry: ToolRegistry,
        guardrails: InputGuardrails | None = None,
        default_max_tokens: int = 4096,
        call_timeout: float | None = None,
    ) -> None:
        self.provider = provider
        self.tool_registry = tool_registry
        self.guardrails = guardrails
        self.default_max_tokens = default_max_tokens
        self.call_timeout = call_timeout

    async def execute(self, step: SkillStep, context: ExecutionContext) -> Any:
        prompt = render_template(step.prompt or "", context.step_results, context.business_context)
        if self.guardrails is not None:
            self.guardrails.check(step, prompt, context)

        loop = ReasoningLoop(
            provider=self.provider,
            tool_executor=ToolExecutor(self.tool_registry.subset(step.tools)),
            max_tool_calls=step.max_tool_calls,
            max_tokens=step.max_tokens or self.default_max_tokens,
            call_timeout=self.call_timeout,
        )
        outcome = await loop.run(build_system_prompt(step, context.business_context), prompt, context)
        return outcome.output


class TierRouter:
    """Dispatches each step to exactly one executor, chosen by its tier"""

    def __init__(self, executors: Mapping[StepTier, StepExecutor]) -> None:
        self.executors = dict(executors)

    async def execute(self, step: SkillStep, context: ExecutionContext) -> Any:
        executor = self.executors.get(step.tier)
        if executor is None:
            raise StepConfigurationError(f"No executor configured for tier '{step.tier.value}'")
        return await executor.execute(step, context)
