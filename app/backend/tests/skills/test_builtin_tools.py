"""Tests for the built-in compute tools"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from pandora.engine.context import ExecutionContext, freeze_business_context
from pandora.skills.base import ToolError
from pandora.skills.builtin import (
    ResolveTimeWindowsTool,
    TopNWithSummaryTool,
    register_builtin_tools,
    resolve_time_windows,
    top_n_with_summary,
)
from pandora.skills.builtin.time_windows import CHANGE_WINDOWS, quarter_bounds, shift_months
from pandora.skills.registry import ToolRegistry

NOW = datetime(2024, 5, 15, 12, 0, tzinfo=UTC)


class TestResolveTimeWindows:
    def test_defaults(self):
        """Should resolve the default windows"""
        windows = resolve_time_windows({}, None, NOW)

        assert windows["analysis_range"] == {
            "start": "2024-04-01T00:00:00+00:00",
            "end": "2024-06-30T23:59:59+00:00",
            "quarter": "Q2 2024",
        }
        assert windows["change_range"] == {
            "start": "2024-05-08T12:00:00+00:00",
            "end": "2024-05-15T12:00:00+00:00",
        }
        assert windows["previous_period_range"]["end"] == "2024-03-31T23:59:59.999000+00:00"
        assert windows["last_run_at"] is None
        assert windows["config"] == {
            "analysis_window": "current_quarter",
            "change_window": "last_7d",
            "trend_comparison": "previous_period",
        }

    def test_since_last_run_uses_last_run(self):
        """Should start since_last_run at the last run"""
        last_run = datetime(2024, 5, 10, 8, 0, tzinfo=UTC)
        windows = resolve_time_windows({"change_window": "since_last_run"}, last_run, NOW)

        assert windows["change_range"]["start"] == "2024-05-10T08:00:00+00:00"
        assert windows["last_run_at"] == "2024-05-10T08:00:00+00:00"

    def test_since_last_run_without_history_falls_back_to_a_week(self):
        """Should fall back to a week without history"""
        windows = resolve_time_windows({"change_window": "since_last_run"}, None, NOW)
        assert windows["change_range"]["start"] == "2024-05-08T12:00:00+00:00"

    def test_trailing_window_and_no_comparison(self):
        """Should resolve a trailing window with no comparison"""
        windows = resolve_time_windows(
            {"analysis_window": "trailing_30d", "trend_comparison": "none"}, None, NOW
        )

        assert windows["analysis_range"]["start"] == "2024-04-15T12:00:00+00:00"
        assert windows["analysis_range"]["end"] == "2024-05-15T12:00:00+00:00"
        assert windows["previous_period_range"] is None

    def test_same_period_last_quarter(self):
        """Should compare with the same period last quarter"""
        windows = resolve_time_windows({"trend_comparison": "same_period_last_quarter"}, None, NOW)
        assert windows["previous_period_range"]["start"] == "2024-01-01T00:00:00+00:00"

    def test_unknown_window_raises(self):
        """Should raise for an unknown window"""
        with pytest.raises(ToolError, match="Unknown analysis_window: fiscal_year"):
            resolve_time_windows({"analysis_window": "fiscal_year"}, None, NOW)

    def test_helpers(self):
        """Should compute quarter bounds and month shifts"""
        assert quarter_bounds(datetime(2024, 11, 2, tzinfo=UTC)).start == datetime(2024, 10, 1, tzinfo=UTC)
        assert shift_months(datetime(2024, 3, 31, tzinfo=UTC), -1) == datetime(2024, 2, 29, tzinfo=UTC)
        assert shift_months(datetime(2024, 1, 15, tzinfo=UTC), -3) == datetime(2023, 10, 15, tzinfo=UTC)


class TestResolveTimeWindowsTool:
    def setup_method(self):
        self.tool = ResolveTimeWindowsTool(clock=lambda: NOW)

    @pytest.mark.asyncio
    async def test_args_override_run_time_config(self, context: ExecutionContext):
        """Should let arguments override the run time_config"""
        context.business_context = freeze_business_context(
            {"time_config": {"analysis_window": "current_month", "change_window": "last_14d"}}
        )

        windows = await self.tool.execute({"change_window": "last_30d"}, context)

        assert windows["config"] == {
            "analysis_window": "current_month",
            "change_window": "last_30d",
            "trend_comparison": "previous_period",
        }
        assert windows["analysis_range"]["end"] == "2024-05-31T23:59:59+00:00"
        assert windows["change_range"]["start"] == "2024-04-15T12:00:00+00:00"

    @pytest.mark.asyncio
    async def test_naive_last_run_treated_as_utc(self, context):
        """Should treat a naive last_run_at as UTC"""
        windows = await self.tool.execute(
            {"change_window": "since_last_run", "last_run_at": "2024-05-01T00:00:00"}, context
        )
        assert windows["change_range"]["start"] == "2024-05-01T00:00:00+00:00"

    @pytest.mark.asyncio
    async def test_invalid_last_run_raises(self, context):
        """Should raise for an unreadable last_run_at"""
        with pytest.raises(ToolError, match="Invalid last_run_at"):
            await self.tool.execute({"last_run_at": "yesterday"}, context)

    @pytest.mark.asyncio
    async def test_since_last_run_uses_lookup(self, context):
        """Should ask the lookup for the last completed run of this skill and workspace"""
        calls = []

        async def lookup(workspace_id, skill_id):
            calls.append((workspace_id, skill_id))
            return datetime(2024, 5, 12, 6, 30)

        tool = ResolveTimeWindowsTool(clock=lambda: NOW, last_run_lookup=lookup)

        windows = await tool.execute({"change_window": "since_last_run"}, context)

        assert calls == [("ws-1", "test-skill")]
        assert windows["last_run_at"] == "2024-05-12T06:30:00+00:00"
        assert windows["change_range"]["start"] == "2024-05-12T06:30:00+00:00"

    @pytest.mark.asyncio
    async def test_explicit_last_run_skips_lookup(self, context):
        """Should prefer an explicit last_run_at over the lookup"""
        lookup = AsyncMock(return_value=datetime(2024, 5, 12, tzinfo=UTC))
        tool = ResolveTimeWindowsTool(clock=lambda: NOW, last_run_lookup=lookup)

        windows = await tool.execute(
            {"change_window": "since_last_run", "last_run_at": "2024-05-01T00:00:00+00:00"}, context
        )

        lookup.assert_not_awaited()
        assert windows["change_range"]["start"] == "2024-05-01T00:00:00+00:00"

    @pytest.mark.asyncio
    async def test_lookup_without_history_falls_back_to_a_week(self, context):
        """Should fall back to the last week when the lookup finds no run"""
        tool = ResolveTimeWindowsTool(clock=lambda: NOW, last_run_lookup=AsyncMock(return_value=None))

        windows = await tool.execute({"change_window": "since_last_run"}, context)

        assert windows["last_run_at"] is None
        assert windows["change_range"]["start"] == "2024-05-08T12:00:00+00:00"

    def test_window_modes_are_enumerated_in_schema(self):
        """Should list the allowed window modes in the tool schema"""
        properties = self.tool.parameters["properties"]

        assert properties["change_window"]["enum"] == list(CHANGE_WINDOWS)
        assert "current_quarter" in properties["analysis_window"]["enum"]
        assert "enum" not in properties["last_run_at"]
        assert self.tool.parameters["required"] == []


class TestTopNWithSummary:
    def test_ranks_and_summarizes_remainder(self):
        """Should rank and summarize the remainder"""
        items = [
            {"name": "A", "amount": 500},
            {"name": "B", "amount": 100.4},
            {"name": "C", "amount": 300},
            {"name": "D", "amount": None},
        ]

        result = top_n_with_summary(items, n=2)

        assert [item["name"] for item in result["top_items"]] == ["A", "C"]
        assert result["remaining"] == {"count": 2, "total_value": 100}
        assert result["total"] == 4

    def test_ascending_on_other_field(self):
        """Should sort ascending on another field"""
        items = [{"name": "A", "days": 40}, {"name": "B", "days": 3}]
        result = top_n_with_summary(items, n=1, sort_by="days", descending=False)
        assert result["top_items"] == [{"name": "B", "days": 3}]

    def test_negative_n_rejected(self):
        """Should reject a negative n"""
        with pytest.raises(ToolError):
            top_n_with_summary([], n=-1)


class TestTopNWithSummaryTool:
    def setup_method(self):
        self.tool = TopNWithSummaryTool()

    @pytest.mark.asyncio
    async def test_reads_source_from_step_results(self, context: ExecutionContext):
        """Should read the source from step results"""
        context.store_result("deals", {"items": [{"amount": i} for i in range(25)]})

        result = await self.tool.execute({"source": "deals.items", "n": 5}, context)

        assert [item["amount"] for item in result["top_items"]] == [24, 23, 22, 21, 20]
        assert result["remaining"]["count"] == 20
        assert result["remaining"]["total_value"] == sum(range(20))

    @pytest.mark.asyncio
    async def test_unresolved_source_raises(self, context):
        """Should raise for an unresolved source"""
        with pytest.raises(ToolError, match="has no result"):
            await self.tool.execute({"source": "missing"}, context)

    @pytest.mark.asyncio
    async def test_non_list_raises(self, context):
        """Should raise for non-list items"""
        with pytest.raises(ToolError, match="needs a list"):
            await self.tool.execute({"items": {"amount": 1}}, context)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("flag", ["false", "False", "0", False])
    async def test_false_descending_sorts_ascending(self, context, flag):
        """Should treat string and boolean false alike for descending"""
        items = [{"name": "A", "amount": 5}, {"name": "B", "amount": 1}]

        result = await self.tool.execute({"items": items, "n": 1, "descending": flag}, context)

        assert result["top_items"] == [{"name": "B", "amount": 1}]

    @pytest.mark.asyncio
    async def test_string_true_descending_sorts_descending(self, context):
        """Should sort descending for the string true"""
        items = [{"name": "A", "amount": 5}, {"name": "B", "amount": 1}]

        result = await self.tool.execute({"items": items, "n": 1, "descending": "true"}, context)

        assert result["top_items"] == [{"name": "A", "amount": 5}]

    @pytest.mark.asyncio
    async def test_unreadable_descending_raises(self, context):
        """Should reject a descending value that is not a boolean"""
        with pytest.raises(ToolError, match="Invalid boolean"):
            await self.tool.execute({"items": [], "descending": "sideways"}, context)

    def test_schema_defaults(self):
        """Should publish defaults for the optional ranking arguments"""
        properties = self.tool.parameters["properties"]

        assert properties["n"] == {
            "type": "integer",
            "description": "Number of records to keep",
            "default": 20,
        }
        assert properties["descending"]["default"] is True
        assert "default" not in properties["source"]


class TestRegisterBuiltinTools:
    def test_registers_once(self):
        """Should register each built-in tool once"""
        registry = ToolRegistry()

        register_builtin_tools(registry)
        register_builtin_tools(registry)

        assert "resolve_time_windows" in registry
        assert "top_n_with_summary" in registry
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_last_run_lookup_reaches_time_windows(self, context):
        """Should hand the last-run lookup to resolve_time_windows"""
        lookup = AsyncMock(return_value=None)
        registry = register_builtin_tools(ToolRegistry(), last_run_lookup=lookup)

        await registry.require("resolve_time_windows").execute({}, context)

        lookup.assert_awaited_once_with("ws-1", "test-skill")
