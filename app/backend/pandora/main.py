"""Application factory.

Run with: uvicorn --factory pandora.main:create_app
"""

import logging

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pandora.api import skill_runs, skills
from pandora.core.config import Settings, get_settings
from pandora.core.logging import setup_logging
from pandora.db.session import get_async_sessionmaker
from pandora.engine.runtime import SkillRuntime
from pandora.llm.anthropic import AnthropicReasoningProvider
from pandora.llm.openai_compatible import OpenAICompatibleClassificationProvider
from pandora.llm.providers import ClassificationProvider, ReasoningProvider
from pandora.services.context import DatabaseContextProvider
from pandora.services.run_ledger import SqlRunLedger
from pandora.skills.builtin import register_builtin_tools
from pandora.skills.library import load_skill_library
from pandora.skills.registry import SkillRegistry, ToolRegistry

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    tool_registry: ToolRegistry | None = None,
    skill_registry: SkillRegistry | None = None,
    classification_provider: ClassificationProvider | None = None,
    reasoning_provider: ReasoningProvider | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Build the API with its runtime and registries.

    Every collaborator can be injected; anything omitted is built from
    settings. Built-in tools are always added to the tool registry.
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    session_factory = session_factory or get_async_sessionmaker(settings.DATABASE_URL)
    run_ledger = SqlRunLedger(session_factory)
    tool_registry = register_builtin_tools(
        tool_registry or ToolRegistry(), last_run_lookup=run_ledger.last_completed_at
    )
    skill_registry = skill_registry or load_skill_library(SkillRegistry())
    for skill in skill_registry.list_skills():
        missing = [name for name in skill.required_tools if name not in tool_registry]
        if missing:
            logger.warning(f"Skill '{skill.id}' cannot run until tools are registered: {missing}")

    runtime = SkillRuntime(
        tool_registry=tool_registry,
        classification_provider=classification_provider
        or OpenAICompatibleClassificationProvider.from_settings(settings),
        reasoning_provider=reasoning_provider or AnthropicReasoningProvider.from_settings(settings),
        context_provider=DatabaseContextProvider(session_factory),
        run_ledger=run_ledger,
        settings=settings,
    )

    app = FastAPI(title=settings.PROJECT_NAME)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.tool_registry = tool_registry
    app.state.skill_registry = skill_registry
    app.state.skill_runtime = runtime

    app.include_router(skills.router, prefix=settings.API_V1_PREFIX)
    app.include_router(skill_runs.router, prefix=settings.API_V1_PREFIX)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    logger.info(
        f"{settings.PROJECT_NAME} ready: {len(skill_registry)} skill(s), {len(tool_registry)} tool(s)"
    )
    return app
