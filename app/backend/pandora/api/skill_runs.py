"""Run ledger endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from pandora.core.dependencies import get_db
from pandora.schemas.run import SkillRunResponse
from pandora.services import run_ledger as run_ledger_service

router = APIRouter(prefix="/skill-runs", tags=["skill-runs"])


@router.get("/{run_id}", response_model=SkillRunResponse)
async def get_skill_run(
    run_id: str,
    db: AsyncSession = Depends(get_db),
) -> SkillRunResponse:
    """Get the ledger entry for one run.

    Raises:
        HTTPException: 404 if no run with this id was recorded
    """
    run = await run_ledger_service.get_skill_run(db, run_id)
    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Skill run '{run_id}' not found",
        )
    return SkillRunResponse.model_validate(run)


@router.get("", response_model=list[SkillRunResponse])
async def list_skill_runs(
    workspace_id: str,
    skill_id: str | None = None,
    limit: int = 20,
    db: AsyncSession = Depends(get_db),
) -> list[SkillRunResponse]:
    """List a workspace's most recent runs, newest first."""
    runs = await run_ledger_service.list_skill_runs(db, workspace_id, skill_id, limit=limit)
    return [SkillRunResponse.model_validate(run) for run in runs]
