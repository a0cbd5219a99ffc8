"""Shared fixtures: scripted providers, in-memory collaborators and a SQLite database."""

from collections.abc import AsyncGenerator

import pytest
from fakes import (
    BUSINESS_CONTEXT,
    TEST_DATABASE_URL,
    RecordingLedger,
    ScriptedClassificationProvider,
    ScriptedReasoningProvider,
    StaticContextProvider,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pandora.core.config import Settings
from pandora.db import models  # noqa: F401  (registers tables on Base.metadata)
from pandora.db.session import Base
from pandora.engine.context import ExecutionContext
from pandora.engine.runtime import SkillRuntime
from pandora.skills.base import FunctionTool
from pandora.skills.registry import ToolRegistry


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=TEST_DATABASE_URL,
        LLM_CALL_TIMEOUT_SECONDS=5.0,
    )


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(run_id="run-1", skill_id="test-skill", workspace_id="ws-1")


@pytest.fixture
def tool_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        FunctionTool(
            name="get_deals",
            description="Return open deals",
            fn=lambda args, ctx: [
                {"name": f"Deal {i}", "amount": 1000 * i, "stage": "proposal"} for i in range(3)
            ],
        )
    )
    registry.register(
        FunctionTool(
            name="get_deal",
            description="Return one deal",
            fn=lambda args, ctx: {"id": args.get("id"), "name": "Deal 1", "amount": 1000},
        )
    )
    return registry


@pytest.fixture
def reasoning_provider() -> ScriptedReasoningProvider:
    return ScriptedReasoningProvider()


@pytest.fixture
def classification_provider() -> ScriptedClassificationProvider:
    return ScriptedClassificationProvider()


@pytest.fixture
def context_provider() -> StaticContextProvider:
    return StaticContextProvider(BUSINESS_CONTEXT)


@pytest.fixture
def ledger() -> RecordingLedger:
    return RecordingLedger()


@pytest.fixture
def runtime(
    tool_registry: ToolRegistry,
    classification_provider: ScriptedClassificationProvider,
    reasoning_provider: ScriptedReasoningProvider,
    context_provider: StaticContextProvider,
    ledger: RecordingLedger,
    settings: Settings,
) -> SkillRuntime:
    return SkillRuntime(
        tool_registry=tool_registry,
        classification_provider=classification_provider,
        reasoning_provider=reasoning_provider,
        context_provider=context_provider,
        run_ledger=ledger,
        settings=settings,
    )


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """In-memory SQLite shared by every session of one test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
