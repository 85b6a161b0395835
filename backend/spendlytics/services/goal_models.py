"""Immutable records shared by the goal insight services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

GoalTargetType = Literal["numeric", "boolean", "milestone"]
GoalStatus = Literal["not_started", "in_progress", "on_track", "behind", "completed", "paused"]
Trend = Literal["improving", "steady", "declining"]
DriftSeverity = Literal["none", "warning", "critical"]
InsightSeverity = Literal["critical", "warning", "info", "success"]
InsightKind = Literal[
    "behind_pace",
    "falling_behind",
    "ready_to_complete",
    "accelerating",
    "slowing_down",
    "approaching_milestone",
    "on_track",
]
InsightActionName = Literal["navigate_to_goal", "mark_goal_complete"]
Confidence = Literal["high", "medium", "low"]
RecommendationType = Literal["increase_contribution", "adjust_timeline", "celebrate"]

VALID_TARGET_TYPES: set[str] = {"numeric", "boolean", "milestone"}
VALID_STATUSES: set[str] = {"not_started", "in_progress", "on_track", "behind", "completed", "paused"}

# Lower rank sorts first.
SEVERITY_RANK: dict[str, int] = {"critical": 0, "warning": 1, "info": 2, "success": 3}

DAYS_PER_MONTH = Decimal("30")


def _to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _to_date(value: datetime | date | None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class Goal:
    id: UUID
    title: str
    target_type: GoalTargetType = "numeric"
    target_value: Decimal | None = None
    current_value: Decimal = Decimal("0")
    target_unit: str | None = None
    start_date: date | None = None
    target_date: date | None = None
    status: GoalStatus = "in_progress"
    is_active: bool = True
    category_id: UUID | None = None
    category_name: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Goal":
        """Build a goal from a `life_goals` dict row."""
        target_type = str(row.get("target_type") or "numeric")
        if target_type not in VALID_TARGET_TYPES:
            raise ValueError(f"unknown target_type: {target_type}")

        status = str(row.get("status") or "not_started")
        if status not in VALID_STATUSES:
            raise ValueError(f"unknown status: {status}")

        return cls(
            id=row["id"],
            title=str(row.get("title") or ""),
            target_type=target_type,  # type: ignore[arg-type]
            target_value=_to_decimal(row.get("target_value")),
            current_value=_to_decimal(row.get("current_value")) or Decimal("0"),
            target_unit=row.get("target_unit"),
            start_date=_to_date(row.get("start_date")),
            target_date=_to_date(row.get("target_date")),
            status=status,  # type: ignore[arg-type]
            is_active=bool(row.get("is_active", True)),
            category_id=row.get("category_id"),
            category_name=row.get("category_name"),
        )


@dataclass(frozen=True)
class ProgressSnapshot:
    goal_id: UUID
    date: date
    value: Decimal

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ProgressSnapshot":
        return cls(
            goal_id=row["goal_id"],
            date=_to_date(row["date"]),
            value=_to_decimal(row["value"]) or Decimal("0"),
        )


@dataclass(frozen=True)
class DriftSettings:
    """Fractional deviation thresholds (0.10 = ten percentage points behind pace)."""
    warning_threshold: Decimal = Decimal("0.10")
    critical_threshold: Decimal = Decimal("0.25")


DEFAULT_DRIFT_SETTINGS = DriftSettings()


@dataclass(frozen=True)
class InsightConfig:
    max_insights: int = 10
    trend_change_ratio: Decimal = Decimal("0.10")
    horizon_days: int = 365
    # Used when the user has no stored drift thresholds.
    drift_defaults: DriftSettings = DEFAULT_DRIFT_SETTINGS

    @classmethod
    def from_settings(cls, settings: Any) -> "InsightConfig":
        return cls(
            max_insights=settings.insights_max_items,
            trend_change_ratio=_to_decimal(settings.insights_trend_change_ratio),
            horizon_days=settings.drift_horizon_days,
            drift_defaults=DriftSettings(
                warning_threshold=_to_decimal(settings.drift_warning_threshold),
                critical_threshold=_to_decimal(settings.drift_critical_threshold),
            ),
        )


DEFAULT_INSIGHT_CONFIG = InsightConfig()


@dataclass(frozen=True)
class RateEstimate:
    progress_rate: Decimal
    progress_rate_monthly: Decimal
    trend: Trend
    data_points: int
    last_snapshot_date: date | None = None


@dataclass(frozen=True)
class Projection:
    goal_id: UUID
    goal_title: str
    as_of: date
    current_value: Decimal
    target_value: Decimal | None
    percent_complete: Decimal
    progress_rate: Decimal
    progress_rate_monthly: Decimal
    trend: Trend
    drift: DriftSeverity
    on_track: bool
    estimated_completion_date: date | None
    estimated_days_to_complete: int | None
    days_remaining: int | None
    projected_value_at_deadline: Decimal | None
    shortfall: Decimal | None
    required_rate: Decimal | None
    data_points: int
    confidence: Confidence
    is_projectable: bool


@dataclass(frozen=True)
class InsightAction:
    action: InsightActionName
    label: str


@dataclass(frozen=True)
class Insight:
    id: str
    goal_id: UUID
    goal_title: str
    kind: InsightKind
    severity: InsightSeverity
    title: str
    description: str
    actionable: InsightAction | None = None


@dataclass(frozen=True)
class Recommendation:
    id: str
    goal_id: UUID
    type: RecommendationType
    title: str
    description: str
    impact: Literal["high", "medium", "low"]
    effort: Literal["high", "medium", "low"]


@dataclass(frozen=True)
class InsightsSummary:
    total_goals: int
    goals_on_track: int
    goals_at_risk: int
    goals_critical: int
    goals_completed: int
    generated_on: date
    insights: tuple[Insight, ...] = field(default_factory=tuple)
    projections: tuple[Projection, ...] = field(default_factory=tuple)
    critical_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    success_count: int = 0


@dataclass(frozen=True)
class WhatIfResult:
    new_completion_date: date | None
    days_saved: int
    new_progress_rate: Decimal
    improvement_pct: Decimal
