"""Run ledger service.

Persists the start and end of every skill run to the `skill_runs` table.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pandora.db.models.skill_run import SkillRun, SkillRunStatus

logger = logging.getLogger(__name__)


async def get_skill_run(db: AsyncSession, run_id: str) -> SkillRun | None:
    result = await db.execute(select(SkillRun).where(SkillRun.run_id == run_id))
    return result.scalar_one_or_none()


async def list_skill_runs(
    db: AsyncSession, workspace_id: str, skill_id: str | None = None, limit: int = 20
) -> list[SkillRun]:
    """List a workspace's most recent runs, newest first."""
    stmt = select(SkillRun).where(SkillRun.workspace_id == workspace_id)
    if skill_id is not None:
        stmt = stmt.where(SkillRun.skill_id == skill_id)
    stmt = stmt.order_by(SkillRun.started_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_last_completed_at(db: AsyncSession, workspace_id: str, skill_id: str) -> datetime | None:
    """Completion time of the most recent `completed` run of a skill in a workspace."""
    stmt = (
        select(SkillRun.completed_at)
        .where(
            SkillRun.workspace_id == workspace_id,
            SkillRun.skill_id == skill_id,
            SkillRun.status == SkillRunStatus.COMPLETED.value,
            SkillRun.completed_at.is_not(None),
        )
        .order_by(SkillRun.completed_at.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


class SqlRunLedger:
    """Run ledger backed by SQLAlchemy.

    Each call opens its own session so a ledger failure never leaves a
    half-finished transaction behind for the run.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record_run_start(self, run_id: str, skill_id: str, workspace_id: str) -> None:
        async with self.session_factory() as db:
            if await get_skill_run(db, run_id) is not None:
                logger.warning(f"Run {run_id} already recorded, skipping start record")
                return
            db.add(
                SkillRun(
                    run_id=run_id,
                    skill_id=skill_id,
                    workspace_id=workspace_id,
                    status=SkillRunStatus.RUNNING.value,
                )
            )
            await db.commit()

    async def record_run_end(
        self,
        run_id: str,
        status: str,
        output: Any,
        error: str | None,
        token_usage: dict[str, int] | None = None,
    ) -> None:
        """Write the terminal state of a run.

        Raises:
            LookupError: If no start record exists for `run_id`
        """
        async with self.session_factory() as db:
            run = await get_skill_run(db, run_id)
            if run is None:
                raise LookupError(f"No ledger entry for run {run_id}")

            run.status = SkillRunStatus(status).value
            run.output = json.loads(json.dumps(output, default=str))
            run.error = error
            run.token_usage = token_usage
            run.completed_at = datetime.now(UTC)
            await db.commit()

    async def last_completed_at(self, workspace_id: str, skill_id: str) -> datetime | None:
        async with self.session_factory() as db:
            return await get_last_completed_at(db, workspace_id, skill_id)
