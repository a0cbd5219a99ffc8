"""
ResolveTimeWindows Tool

Turns a skill's time configuration into concrete analysis, change-detection
and comparison ranges.
"""

import calendar
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from pandora.skills.base import BaseTool, ToolError, ToolParameter, build_parameters_schema

if TYPE_CHECKING:
    from pandora.engine.context import ExecutionContext

ANALYSIS_WINDOWS = ("current_quarter", "current_month", "trailing_90d", "trailing_30d", "all_time")
CHANGE_WINDOWS = ("since_last_run", "last_7d", "last_14d", "last_30d")
TREND_COMPARISONS = ("previous_period", "same_period_last_quarter", "none")

DEFAULT_TIME_CONFIG = {
    "analysis_window": "current_quarter",
    "change_window": "last_7d",
    "trend_comparison": "previous_period",
}

CHANGE_WINDOW_DAYS = {"last_7d": 7, "last_14d": 14, "last_30d": 30}
ALL_TIME_START = datetime(2000, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def _month_end(year: int, month: int) -> datetime:
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59, tzinfo=UTC)


def quarter_bounds(moment: datetime) -> DateRange:
    start_month = (moment.month - 1) // 3 * 3 + 1
    return DateRange(
        start=datetime(moment.year, start_month, 1, tzinfo=UTC),
        end=_month_end(moment.year, start_month + 2),
    )


def month_bounds(moment: datetime) -> DateRange:
    return DateRange(
        start=datetime(moment.year, moment.month, 1, tzinfo=UTC),
        end=_month_end(moment.year, moment.month),
    )


def shift_months(moment: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length"""
    index = moment.year * 12 + moment.month - 1 + months
    year, month = divmod(index, 12)
    day = min(moment.day, calendar.monthrange(year, month + 1)[1])
    return moment.replace(year=year, month=month + 1, day=day)


def quarter_label(moment: datetime) -> str:
    return f"Q{(moment.month - 1) // 3 + 1} {moment.year}"


def resolve_time_windows(
    config: Mapping[str, str], last_run_at: datetime | None, now: datetime
) -> dict[str, Any]:
    """
    Resolve concrete ranges for a time configuration

    Raises:
        ToolError: If a window name is not recognized
    """
    analysis_window = config.get("analysis_window", DEFAULT_TIME_CONFIG["analysis_window"])
    change_window = config.get("change_window", DEFAULT_TIME_CONFIG["change_window"])
    trend_comparison = config.get("trend_comparison", DEFAULT_TIME_CONFIG["trend_comparison"])

    if analysis_window not in ANALYSIS_WINDOWS:
        raise ToolError(f"Unknown analysis_window: {analysis_window}")
    if change_window not in CHANGE_WINDOWS:
        raise ToolError(f"Unknown change_window: {change_window}")
    if trend_comparison not in TREND_COMPARISONS:
        raise ToolError(f"Unknown trend_comparison: {trend_comparison}")

    if analysis_window == "current_quarter":
        analysis = quarter_bounds(now)
    elif analysis_window == "current_month":
        analysis = month_bounds(now)
    elif analysis_window == "trailing_90d":
        analysis = DateRange(start=now - timedelta(days=90), end=now)
    elif analysis_window == "trailing_30d":
        analysis = DateRange(start=now - timedelta(days=30), end=now)
    else:
        analysis = DateRange(start=ALL_TIME_START, end=now)

    if change_window == "since_last_run" and last_run_at is not None:
        change = DateRange(start=last_run_at, end=now)
    else:
        days = CHANGE_WINDOW_DAYS.get(change_window, 7)
        change = DateRange(start=now - timedelta(days=days), end=now)

    previous: DateRange | None = None
    if trend_comparison == "previous_period":
        duration = analysis.end - analysis.start
        previous = DateRange(
            start=analysis.start - duration,
            end=analysis.start - timedelta(milliseconds=1),
        )
    elif trend_comparison == "same_period_last_quarter":
        previous = DateRange(
            start=shift_months(analysis.start, -3),
            end=shift_months(analysis.end, -3),
        )

    return {
        "analysis_range": {**analysis.to_dict(), "quarter": quarter_label(analysis.start)},
        "change_range": change.to_dict(),
        "previous_period_range": previous.to_dict() if previous else None,
        "last_run_at": last_run_at.isoformat() if last_run_at else None,
        "config": {
            "analysis_window": analysis_window,
            "change_window": change_window,
            "trend_comparison": trend_comparison,
        },
    }


def _parse_timestamp(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError as e:
            raise ToolError(f"Invalid last_run_at timestamp: {value}") from e
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


LastRunLookup = Callable[[str, str], Awaitable[datetime | None]]


class ResolveTimeWindowsTool(BaseTool):
    """
    Tool that resolves analysis, change and comparison ranges

    Explicit arguments win over the run's merged `time_config`, which wins
    over the defaults. Without an explicit `last_run_at`, the completion time
    of the skill's last completed run comes from `last_run_lookup`.
    """

    name = "resolve_time_windows"
    description = (
        "Resolve the analysis, change-detection and previous-period date ranges "
        "for this run's time configuration"
    )
    parameters = build_parameters_schema(
        [
            ToolParameter(
                name="analysis_window",
                type="string",
                description="Analysis window mode",
                enum=ANALYSIS_WINDOWS,
            ),
            ToolParameter(
                name="change_window",
                type="string",
                description="Change detection window",
                enum=CHANGE_WINDOWS,
            ),
            ToolParameter(
                name="trend_comparison",
                type="string",
                description="Period comparison mode",
                enum=TREND_COMPARISONS,
            ),
            ToolParameter(
                name="last_run_at",
                type="string",
                description="ISO 8601 completion time of the previous successful run",
            ),
        ]
    )

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        last_run_lookup: LastRunLookup | None = None,
    ):
        self._clock = clock or (lambda: datetime.now(UTC))
        self._last_run_lookup = last_run_lookup

    async def execute(self, args: dict[str, Any], context: "ExecutionContext") -> Any:
        time_config = context.business_context.get("time_config") or {}
        config = {
            key: args.get(key) or time_config.get(key) or default
            for key, default in DEFAULT_TIME_CONFIG.items()
        }

        last_run_at = _parse_timestamp(args.get("last_run_at"))
        if last_run_at is None and self._last_run_lookup is not None:
            last_run_at = _parse_timestamp(
                await self._last_run_lookup(context.workspace_id, context.skill_id)
            )

        return resolve_time_windows(config, last_run_at, self._clock())
