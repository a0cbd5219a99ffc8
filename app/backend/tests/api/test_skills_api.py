"""
Tests for the skills and skill-runs endpoints

The app is built with scripted providers and an in-memory database, so the
full request path (routing, dependencies, runtime, ledger) is exercised.
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
from fakes import ScriptedClassificationProvider, ScriptedReasoningProvider, text_response
from fastapi import FastAPI

from pandora.main import create_app
from pandora.skills.base import FunctionTool
from pandora.skills.registry import ToolRegistry

OPEN_DEALS = [
    {"name": "Globex renewal", "amount": 90000, "stage": "negotiation", "days_in_stage": 45},
    {"name": "Initech expansion", "amount": 40000, "stage": "proposal", "days_in_stage": 30},
    {"name": "Umbrella pilot", "amount": 15000, "stage": "discovery", "days_in_stage": 60},
]


@pytest.fixture
def crm_tools(tool_registry: ToolRegistry) -> ToolRegistry:
    tool_registry.register(FunctionTool("query_deals", "Query CRM deals", lambda args, ctx: list(OPEN_DEALS)))
    return tool_registry


@pytest.fixture
def app(
    settings,
    crm_tools: ToolRegistry,
    classification_provider: ScriptedClassificationProvider,
    reasoning_provider: ScriptedReasoningProvider,
    session_factory,
) -> FastAPI:
    return create_app(
        settings=settings,
        tool_registry=crm_tools,
        classification_provider=classification_provider,
        reasoning_provider=reasoning_provider,
        session_factory=session_factory,
    )


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client: httpx.AsyncClient):
        """Should report the service as healthy"""
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestSkillCatalog:
    @pytest.mark.asyncio
    async def test_list_skills(self, client):
        """Should list the library skills with their tiers"""
        response = await client.get("/api/v1/skills")

        assert response.status_code == 200
        [summary] = response.json()
        assert summary["id"] == "pipeline-hygiene"
        assert summary["step_count"] == 5
        assert summary["tiers"] == ["compute", "classify", "reason"]

    @pytest.mark.asyncio
    async def test_get_skill(self, client):
        """Should return the full skill definition"""
        response = await client.get("/api/v1/skills/pipeline-hygiene")

        assert response.status_code == 200
        data = response.json()
        assert data["output_format"] == "slack"
        assert [step["id"] for step in data["steps"]][-1] == "synthesize-hygiene-report"

    @pytest.mark.asyncio
    async def test_get_unknown_skill_returns_404(self, client):
        """Should return 404 for an unknown skill"""
        response = await client.get("/api/v1/skills/forecast-rollup")

        assert response.status_code == 404
        assert response.json()["detail"] == "Skill 'forecast-rollup' not found"


class TestRunSkill:
    @pytest.mark.asyncio
    async def test_run_pipeline_hygiene(self, client, classification_provider, reasoning_provider):
        """Should run pipeline-hygiene end to end and persist the run"""
        classification_provider.replies.append(
            '[{"dealName": "Globex renewal", "root_cause": "rep_neglect", "confidence": 0.8, '
            '"signals": ["45 days in stage"], "suggested_action": "Book an exec sync"}]'
        )
        reasoning_provider.responses.append(text_response("*Pipeline hygiene*: Globex renewal is stalling"))

        response = await client.post(
            "/api/v1/workspaces/ws-1/skills/pipeline-hygiene/runs",
            json={"params": {"time_config": {"change_window": "last_30d"}}},
        )

        assert response.status_code == 200
        result = response.json()
        assert result["status"] == "completed", result["errors"]
        assert result["output"] == "*Pipeline hygiene*: Globex renewal is stalling"
        assert result["output_format"] == "slack"
        assert result["step_data"]["time_windows"]["config"]["change_window"] == "last_30d"
        assert result["step_data"]["stale_deals_agg"]["top_items"][0]["name"] == "Globex renewal"
        assert result["step_data"]["deal_classifications"][0]["root_cause"] == "rep_neglect"
        assert result["total_token_usage"]["classify"] == 30

        # Classify prompt is rendered from the ranked deals and the business context
        classify_prompt = classification_provider.calls[0]["prompt"]
        assert "Globex renewal" in classify_prompt
        assert "Remaining deals: 0 ($0)" in classify_prompt

        run = await client.get(f"/api/v1/skill-runs/{result['run_id']}")
        assert run.status_code == 200
        assert run.json()["status"] == "completed"
        assert run.json()["workspace_id"] == "ws-1"

        runs = await client.get("/api/v1/skill-runs", params={"workspace_id": "ws-1"})
        assert [entry["run_id"] for entry in runs.json()] == [result["run_id"]]

    @pytest.mark.asyncio
    async def test_run_without_body(self, client):
        """Should accept a run request without a body"""
        response = await client.post("/api/v1/workspaces/ws-1/skills/pipeline-hygiene/runs")

        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    @pytest.mark.asyncio
    async def test_since_last_run_reads_previous_completion(self, client):
        """Should start the change window at the previous completed run"""
        url = "/api/v1/workspaces/ws-1/skills/pipeline-hygiene/runs"

        first = (await client.post(url)).json()
        second = (await client.post(url)).json()

        assert first["status"] == second["status"] == "completed"
        assert first["step_data"]["time_windows"]["last_run_at"] is None
        last_run_at = second["step_data"]["time_windows"]["last_run_at"]
        assert last_run_at is not None
        assert second["step_data"]["time_windows"]["change_range"]["start"] == last_run_at

        other = await client.post("/api/v1/workspaces/ws-2/skills/pipeline-hygiene/runs")
        assert other.json()["step_data"]["time_windows"]["last_run_at"] is None

    @pytest.mark.asyncio
    async def test_missing_required_tool_fails_run(self, client, crm_tools):
        """Should fail the run before any step when query_deals is not registered"""
        crm_tools.unregister("query_deals")

        response = await client.post("/api/v1/workspaces/ws-1/skills/pipeline-hygiene/runs")

        result = response.json()
        assert response.status_code == 200
        assert result["status"] == "failed"
        assert result["steps"] == []
        assert len(result["errors"]) == 1
        assert result["errors"][0]["step"] == "execution"
        assert "query_deals" in result["errors"][0]["error"]

        run = await client.get(f"/api/v1/skill-runs/{result['run_id']}")
        assert run.json()["status"] == "failed"

    @pytest.mark.asyncio
    async def test_run_unknown_skill_returns_404(self, client):
        """Should return 404 when running an unknown skill"""
        response = await client.post("/api/v1/workspaces/ws-1/skills/nope/runs")
        assert response.status_code == 404


class TestSkillRuns:
    @pytest.mark.asyncio
    async def test_unknown_run_returns_404(self, client):
        """Should return 404 for an unknown run id"""
        response = await client.get("/api/v1/skill-runs/missing")

        assert response.status_code == 404
        assert response.json()["detail"] == "Skill run 'missing' not found"

    @pytest.mark.asyncio
    async def test_list_requires_workspace(self, client):
        """Should require workspace_id when listing runs"""
        response = await client.get("/api/v1/skill-runs")
        assert response.status_code == 422
