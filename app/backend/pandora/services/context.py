"""Business context service.

Builds the read-only business context a skill run is evaluated against from
the workspace's context layer row.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pandora.db.models.context_layer import ContextLayer
from pandora.engine.context import CONTEXT_SECTIONS

logger = logging.getLogger(__name__)


async def get_or_create_context_layer(db: AsyncSession, workspace_id: str) -> ContextLayer:
    """Load the workspace's context layer, creating an empty one on first access."""
    result = await db.execute(select(ContextLayer).where(ContextLayer.workspace_id == workspace_id))
    layer = result.scalar_one_or_none()

    if layer is None:
        logger.info(f"Creating empty context layer for workspace {workspace_id}")
        layer = ContextLayer(
            workspace_id=workspace_id,
            **{section: {} for section in CONTEXT_SECTIONS},
        )
        db.add(layer)
        await db.commit()
        await db.refresh(layer)

    return layer


async def update_context_section(
    db: AsyncSession, workspace_id: str, section: str, data: dict[str, Any]
) -> ContextLayer:
    """Replace one section of the workspace's context layer and bump its version.

    Raises:
        ValueError: If `section` is not a context section
    """
    if section not in CONTEXT_SECTIONS:
        raise ValueError(f"Unknown context section: {section}")

    layer = await get_or_create_context_layer(db, workspace_id)
    setattr(layer, section, dict(data))
    layer.version += 1
    await db.commit()
    await db.refresh(layer)
    return layer


async def build_business_context(db: AsyncSession, workspace_id: str) -> dict[str, Any]:
    """Build the business context for a skill run.

    Missing sections come back as empty objects, never None.

    Args:
        db: Database session
        workspace_id: Workspace the run belongs to

    Returns:
        Dictionary keyed by the five context sections plus `version`
    """
    layer = await get_or_create_context_layer(db, workspace_id)

    context: dict[str, Any] = {
        section: dict(getattr(layer, section) or {}) for section in CONTEXT_SECTIONS
    }
    context["version"] = layer.version
    return context


class DatabaseContextProvider:
    """Business context provider reading the context layer table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_context(self, workspace_id: str) -> dict[str, Any]:
        async with self.session_factory() as db:
            return await build_business_context(db, workspace_id)
