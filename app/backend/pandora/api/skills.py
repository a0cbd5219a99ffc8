"""Skill catalog and execution endpoints."""

import logging

from fastapi import APIRouter, Depends

from pandora.core.dependencies import get_skill_or_404, get_skill_registry, get_skill_runtime
from pandora.engine.runtime import SkillRuntime
from pandora.schemas.run import RunResult, RunSkillRequest
from pandora.schemas.skill import Skill, SkillSummary
from pandora.skills.registry import SkillRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["skills"])


@router.get("/skills", response_model=list[SkillSummary])
async def list_skills(
    registry: SkillRegistry = Depends(get_skill_registry),
) -> list[SkillSummary]:
    """List every registered skill."""
    return [SkillSummary.from_skill(skill) for skill in registry.list_skills()]


@router.get("/skills/{skill_id}", response_model=Skill)
async def get_skill(skill: Skill = Depends(get_skill_or_404)) -> Skill:
    """Get one skill definition, including its steps."""
    return skill


@router.post("/workspaces/{workspace_id}/skills/{skill_id}/runs", response_model=RunResult)
async def run_skill(
    workspace_id: str,
    run_request: RunSkillRequest | None = None,
    skill: Skill = Depends(get_skill_or_404),
    runtime: SkillRuntime = Depends(get_skill_runtime),
) -> RunResult:
    """Execute a skill for a workspace and wait for the result.

    Step failures come back as a `partial` run and run-level failures as a
    `failed` run; neither is an HTTP error.
    """
    params = run_request.params if run_request else {}
    logger.info(f"Run requested: skill {skill.id} for workspace {workspace_id}")
    return await runtime.execute_skill(skill, workspace_id, params=params)
