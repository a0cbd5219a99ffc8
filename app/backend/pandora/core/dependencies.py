"""FastAPI dependencies resolving the collaborators wired onto `app.state`."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from pandora.engine.runtime import SkillRuntime
from pandora.schemas.skill import Skill
from pandora.skills.registry import SkillRegistry


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session from the app's session factory."""
    async with request.app.state.session_factory() as session:
        yield session


def get_skill_registry(request: Request) -> SkillRegistry:
    return request.app.state.skill_registry


def get_skill_runtime(request: Request) -> SkillRuntime:
    return request.app.state.skill_runtime


def get_skill_or_404(
    skill_id: str,
    registry: Annotated[SkillRegistry, Depends(get_skill_registry)],
) -> Skill:
    """Dependency resolving the `skill_id` path parameter to a registered skill."""
    skill = registry.get_skill(skill_id)
    if skill is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Skill '{skill_id}' not found",
        )
    return skill
