"""Tests for the business context service"""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pandora.db.models import ContextLayer
from pandora.services.context import (
    DatabaseContextProvider,
    build_business_context,
    get_or_create_context_layer,
    update_context_section,
)


class TestContextLayer:
    @pytest.mark.asyncio
    async def test_first_access_creates_empty_layer(self, db_session: AsyncSession):
        """Should create an empty layer on first access"""
        layer = await get_or_create_context_layer(db_session, "ws-1")

        assert layer.workspace_id == "ws-1"
        assert layer.version == 1
        assert layer.business_model == {}

        again = await get_or_create_context_layer(db_session, "ws-1")
        assert again.id == layer.id

        rows = (await db_session.execute(select(ContextLayer))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_update_section_bumps_version(self, db_session):
        """Should bump the version on update"""
        layer = await update_context_section(
            db_session, "ws-1", "business_model", {"gtm_motion": "plg", "sales_cycle_days": 30}
        )

        assert layer.version == 2
        assert layer.business_model == {"gtm_motion": "plg", "sales_cycle_days": 30}

    @pytest.mark.asyncio
    async def test_update_unknown_section_raises(self, db_session):
        """Should reject an unknown section"""
        with pytest.raises(ValueError, match="Unknown context section"):
            await update_context_section(db_session, "ws-1", "pricing", {})


class TestBuildBusinessContext:
    @pytest.mark.asyncio
    async def test_all_sections_present(self, db_session):
        """Should return every section"""
        await update_context_section(db_session, "ws-1", "goals_and_targets", {"revenue_target": 100})

        context = await build_business_context(db_session, "ws-1")

        assert context == {
            "business_model": {},
            "team_structure": {},
            "goals_and_targets": {"revenue_target": 100},
            "definitions": {},
            "operational_maturity": {},
            "version": 2,
        }

    @pytest.mark.asyncio
    async def test_workspaces_are_isolated(self, db_session):
        """Should keep workspaces isolated"""
        await update_context_section(db_session, "ws-1", "definitions", {"stale": "21 days"})

        context = await build_business_context(db_session, "ws-2")

        assert context["definitions"] == {}
        assert context["version"] == 1


class TestDatabaseContextProvider:
    @pytest.mark.asyncio
    async def test_reads_through_its_own_session(self, session_factory):
        """Should read through its own session"""
        async with session_factory() as db:
            await update_context_section(db, "ws-1", "team_structure", {"ae_count": 8})

        provider = DatabaseContextProvider(session_factory)
        context = await provider.get_context("ws-1")

        assert context["team_structure"] == {"ae_count": 8}
