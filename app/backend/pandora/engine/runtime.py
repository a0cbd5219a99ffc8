"""
Skill Runtime - Executes a skill's steps and produces one RunResult

The runtime is responsible for:
1. Loading the business context once per run
2. Ordering steps by dependency
3. Routing each step to its tier executor
4. Recording step failures without stopping the run
5. Classifying the terminal status and writing the run ledger
"""

import logging
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import uuid4

from pandora.core.config import Settings, get_settings
from pandora.engine.context import CONTEXT_SECTIONS, ExecutionContext, freeze_business_context
from pandora.engine.errors import MissingToolsError
from pandora.engine.scheduler import order_steps
from pandora.engine.tiers import (
    ClassifyExecutor,
    ComputeExecutor,
    InputGuardrails,
    ReasonExecutor,
    TierRouter,
)
from pandora.llm.providers import ClassificationProvider, ReasoningProvider
from pandora.schemas.run import RunResult, RunStatus, StepErrorRecord, StepOutcome, StepStatus
from pandora.schemas.skill import Skill, SkillStep, StepTier
from pandora.skills.executor import ToolExecutor
from pandora.skills.registry import ToolRegistry

logger = logging.getLogger(__name__)

FATAL_ERROR_STEP = "execution"


class BusinessContextProvider(Protocol):
    async def get_context(self, workspace_id: str) -> Mapping[str, Any]: ...


class RunLedger(Protocol):
    async def record_run_start(self, run_id: str, skill_id: str, workspace_id: str) -> None: ...

    async def record_run_end(
        self,
        run_id: str,
        status: str,
        output: Any,
        error: str | None,
        token_usage: dict[str, int] | None = None,
    ) -> None: ...


def _elapsed_ms(started: float) -> int:
    return max(0, int((time.perf_counter() - started) * 1000))


class SkillRuntime:
    """
    Runs skills against a workspace

    All collaborators are injected, so several runtimes (or several
    concurrent runs on one runtime) never share mutable state.
    """

    def __init__(
        self,
        tool_registry: ToolRegistry,
        classification_provider: ClassificationProvider,
        reasoning_provider: ReasoningProvider,
        context_provider: BusinessContextProvider,
        run_ledger: RunLedger | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize runtime with dependencies

        Args:
            tool_registry: Tools available to compute and reason steps
            classification_provider: Model client for classify steps
            reasoning_provider: Model client for reason steps
            context_provider: Source of the workspace business context
            run_ledger: Optional sink for run start/end records
            settings: Limits and timeouts; defaults to the application settings
        """
        self.settings = settings or get_settings()
        self.tool_registry = tool_registry
        self.context_provider = context_provider
        self.run_ledger = run_ledger

        guardrails = InputGuardrails(
            warn_threshold=self.settings.INPUT_TOKEN_WARN_THRESHOLD,
            token_limit=self.settings.INPUT_TOKEN_LIMIT,
            classify_max_items=self.settings.CLASSIFY_MAX_ARRAY_ITEMS,
        )
        timeout = self.settings.LLM_CALL_TIMEOUT_SECONDS
        self.router = TierRouter(
            {
                StepTier.COMPUTE: ComputeExecutor(ToolExecutor(tool_registry)),
                StepTier.CLASSIFY: ClassifyExecutor(
                    classification_provider, guardrails=guardrails, call_timeout=timeout
                ),
                StepTier.REASON: ReasonExecutor(
                    reasoning_provider,
                    tool_registry,
                    guardrails=guardrails,
                    default_max_tokens=self.settings.DEFAULT_MAX_TOKENS,
                    call_timeout=timeout,
                ),
            }
        )

    async def execute_skill(
        self,
        skill: Skill,
        workspace_id: str,
        params: Mapping[str, Any] | None = None,
        run_id: str | None = None,
    ) -> RunResult:
        """
        Execute every step of a skill and return the run result

        Step failures degrade the status to partial. Failures outside a step
        (missing required tools, context loading, cyclic dependencies) fail the
        whole run. This method does not raise for either.
        """
        run_id = run_id or str(uuid4())
        params = params or {}
        started = time.perf_counter()
        logger.info(f"Starting run {run_id}: skill {skill.id} for workspace {workspace_id}")

        await self._record_start(run_id, skill.id, workspace_id)

        context = ExecutionContext(run_id=run_id, skill_id=skill.id, workspace_id=workspace_id)
        outcomes: list[StepOutcome] = []

        try:
            self._check_required_tools(skill)
            business_context = await self._load_business_context(skill, workspace_id, params)
            context.business_context = freeze_business_context(business_context)

            ordered = order_steps(skill.steps)
            for step in ordered:
                outcomes.append(await self._run_step(step, context))

            output = context.step_results.get(ordered[-1].output_key) if ordered else None
            status = RunStatus.PARTIAL if context.errors else RunStatus.COMPLETED
            errors = list(context.errors)

        except Exception as e:
            logger.error(f"Run {run_id} failed: {e}", exc_info=True)
            output = None
            status = RunStatus.FAILED
            errors = [StepErrorRecord(step=FATAL_ERROR_STEP, error=str(e) or type(e).__name__)]

        result = RunResult(
            run_id=run_id,
            skill_id=skill.id,
            workspace_id=workspace_id,
            status=status,
            output=output,
            output_format=skill.output_format,
            steps=outcomes,
            step_data=dict(context.step_results),
            total_token_usage=context.usage_by_tier(),
            tool_call_count=context.tool_call_count,
            total_duration_ms=_elapsed_ms(started),
            completed_at=datetime.now(UTC),
            errors=errors,
        )

        logger.info(
            f"Run {run_id} finished: status={status.value}, steps={len(outcomes)}, "
            f"errors={len(errors)}, tokens={result.total_token_usage.total}"
        )
        await self._record_end(result)
        return result

    def _check_required_tools(self, skill: Skill) -> None:
        """
        Fail before any step runs when a required tool is not registered

        Raises:
            MissingToolsError: If any of the skill's required tools is not registered
        """
        missing = [name for name in skill.required_tools if name not in self.tool_registry]
        if missing:
            raise MissingToolsError(skill.id, missing)

    async def _load_business_context(
        self, skill: Skill, workspace_id: str, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        loaded = await self.context_provider.get_context(workspace_id)
        business_context = {section: loaded.get(section) or {} for section in CONTEXT_SECTIONS}
        for key, value in loaded.items():
            business_context.setdefault(key, value)

        time_config = {**skill.time_config, **(params.get("time_config") or {})}
        if time_config:
            business_context["time_config"] = time_config
        return business_context

    async def _run_step(self, step: SkillStep, context: ExecutionContext) -> StepOutcome:
        """Execute one step; any exception is recorded as a step failure"""
        started_at = datetime.now(UTC)
        started = time.perf_counter()
        tokens_before = context.tokens_used()
        logger.info(f"Run {context.run_id}: executing step {step.id} ({step.tier.value})")

        error: str | None = None
        try:
            result = await self.router.execute(step, context)
            context.store_result(step.output_key, result)
            logger.info(f"Run {context.run_id}: step {step.id} completed")
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error(f"Run {context.run_id}: step {step.id} failed: {error}", exc_info=True)
            context.record_error(step.id, error)

        return StepOutcome(
            step_id=step.id,
            status=StepStatus.FAILED if error else StepStatus.COMPLETED,
            tier=step.tier,
            started_at=started_at,
            finished_at=datetime.now(UTC),
            duration_ms=_elapsed_ms(started),
            token_usage=context.tokens_used() - tokens_before,
            error=error,
        )

    async def _record_start(self, run_id: str, skill_id: str, workspace_id: str) -> None:
        if self.run_ledger is None:
            return
        try:
            await self.run_ledger.record_run_start(run_id, skill_id, workspace_id)
        except Exception as e:
            logger.error(f"Failed to record start of run {run_id}: {e}", exc_info=True)

    async def _record_end(self, result: RunResult) -> None:
        if self.run_ledger is None:
            return
        error = "; ".join(f"{record.step}: {record.error}" for record in result.errors) or None
        try:
            await self.run_ledger.record_run_end(
                result.run_id,
                result.status.value,
                result.output,
                error,
                token_usage=result.total_token_usage.model_dump(),
            )
        except Exception as e:
            logger.error(f"Failed to record end of run {result.run_id}: {e}", exc_info=True)
