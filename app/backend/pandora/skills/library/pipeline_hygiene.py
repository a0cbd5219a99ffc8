"""
Pipeline Hygiene skill

Finds stale and at-risk deals, classifies their root causes on the bulk model
and synthesizes a prioritized report on the reasoning model.

Expects the workspace to register a `query_deals` tool (CRM data access) and
a `get_deal` tool for drill-down; the other tools are built in.
"""

from typing import Any

PIPELINE_HYGIENE: dict[str, Any] = {
    "id": "pipeline-hygiene",
    "name": "Pipeline Hygiene Check",
    "description": (
        "Analyzes the deal pipeline for stale deals, missing fields and risk signals, "
        "and produces actionable recommendations scoped to the analysis window."
    ),
    "version": "2.2.0",
    "category": "pipeline",
    "required_tools": ["resolve_time_windows", "query_deals", "top_n_with_summary", "get_deal"],
    "required_context": ["business_model", "goals_and_targets", "definitions"],
    "time_config": {
        "analysis_window": "current_quarter",
        "change_window": "since_last_run",
        "trend_comparison": "previous_period",
    },
    "output_format": "slack",
    "steps": [
        {
            "id": "resolve-time-windows",
            "name": "Resolve Time Windows",
            "tier": "compute",
            "compute_fn": "resolve_time_windows",
            "output_key": "time_windows",
        },
        {
            "id": "fetch-open-deals",
            "name": "Fetch Open Deals",
            "tier": "compute",
            "depends_on": ["resolve-time-windows"],
            "compute_fn": "query_deals",
            "compute_args": {"status": "open"},
            "output_key": "open_deals",
        },
        {
            "id": "rank-stale-deals",
            "name": "Rank Stale Deals",
            "tier": "compute",
            "depends_on": ["fetch-open-deals"],
            "compute_fn": "top_n_with_summary",
            "compute_args": {"source": "open_deals", "n": 20, "sort_by": "amount"},
            "output_key": "stale_deals_agg",
        },
        {
            "id": "classify-deal-issues",
            "name": "Classify Deal Issues",
            "tier": "classify",
            "depends_on": ["rank-stale-deals"],
            "prompt": (
                "You are a RevOps data analyst. Classify each deal below to identify root "
                "causes and recommend actions.\n\n"
                "For each deal, determine:\n"
                "1. root_cause: one of [rep_neglect, prospect_stalled, data_hygiene, "
                "process_gap, timing, competitive_loss, champion_change]\n"
                "2. confidence: 0.0 to 1.0\n"
                "3. signals: specific evidence supporting the classification\n"
                "4. suggested_action: one concrete next step\n\n"
                "Context:\n"
                "- Stale threshold: {{goals_and_targets.thresholds.stale_deal_days}} days\n"
                "- Average sales cycle: {{business_model.sales_cycle_days}} days\n\n"
                "STALE DEALS (top 20 by amount):\n"
                "{{stale_deals_agg.top_items}}\n\n"
                "Remaining deals: {{stale_deals_agg.remaining.count}} "
                "(${{stale_deals_agg.remaining.total_value}})"
            ),
            "output_schema": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "dealName": {"type": "string"},
                        "dealId": {"type": "string"},
                        "root_cause": {"type": "string"},
                        "confidence": {"type": "number"},
                        "signals": {"type": "array", "items": {"type": "string"}},
                        "suggested_action": {"type": "string"},
                    },
                    "required": [
                        "dealName",
                        "root_cause",
                        "confidence",
                        "signals",
                        "suggested_action",
                    ],
                },
            },
            "output_key": "deal_classifications",
        },
        {
            "id": "synthesize-hygiene-report",
            "name": "Synthesize Pipeline Hygiene Report",
            "tier": "reason",
            "depends_on": ["resolve-time-windows", "rank-stale-deals", "classify-deal-issues"],
            "tools": ["query_deals", "get_deal"],
            "max_tool_calls": 3,
            "prompt": (
                "You have pre-analyzed pipeline data for this workspace. Work from these "
                "summaries and classifications, not raw records.\n\n"
                "TIME SCOPE:\n"
                "- Analysis period: {{time_windows.analysis_range.start}} to "
                "{{time_windows.analysis_range.end}} ({{time_windows.analysis_range.quarter}})\n"
                "- Changes since: {{time_windows.change_range.start}}\n\n"
                "STALE DEALS:\n{{stale_deals_agg}}\n\n"
                "DEAL CLASSIFICATIONS:\n{{deal_classifications}}\n\n"
                "Write a pipeline hygiene report: the three most urgent issues, the deals "
                "behind them and one owner-level action per issue. Use get_deal only when "
                "a classification needs more evidence."
            ),
            "output_key": "hygiene_report",
        },
    ],
}

SKILL_LIBRARY: tuple[dict[str, Any], ...] = (PIPELINE_HYGIENE,)
