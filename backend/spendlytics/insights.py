"""
Goal insights API router.

Fetch and display:

- per-goal projections (completion date, shortfall, required pace)
- drift counters and ranked insight cards
- what-if contribution scenarios and recommendations
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import TYPE_CHECKING, Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_serializer

from .auth import get_current_user_id
from .config import settings
from .database import get_db_connection
from .services.goal_models import InsightConfig, InsightKind
from .services.goal_store import (
    load_goal_recommendations,
    load_goal_what_if,
    load_insights_summary,
)

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

router = APIRouter(prefix="/insights", tags=["insights"])


def _amount(value: Decimal | None) -> str | None:
    """Serialize goal amounts to fixed 2-decimal strings."""
    if value is None:
        return None
    return str(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _rate(value: Decimal | None) -> str | None:
    # Per-day rates are often fractions of a unit.
    if value is None:
        return None
    return str(value.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP))


def _engine_config() -> InsightConfig:
    return InsightConfig.from_settings(settings)


class ProjectionResponse(BaseModel):
    """Forecast fields for one goal card."""
    goal_id: UUID
    goal_title: str
    as_of: date
    current_value: Decimal
    target_value: Decimal | None
    percent_complete: Decimal
    progress_rate: Decimal
    progress_rate_monthly: Decimal
    trend: Literal["improving", "steady", "declining"]
    drift: Literal["none", "warning", "critical"]
    on_track: bool
    estimated_completion_date: date | None
    estimated_days_to_complete: int | None
    days_remaining: int | None
    projected_value_at_deadline: Decimal | None
    shortfall: Decimal | None
    required_rate: Decimal | None
    data_points: int
    confidence: Literal["high", "medium", "low"]
    is_projectable: bool

    @field_serializer(
        "current_value",
        "target_value",
        "progress_rate_monthly",
        "projected_value_at_deadline",
        "shortfall",
        when_used="always",
    )
    def serialize_amount(self, value: Decimal | None) -> str | None:
        return _amount(value)

    @field_serializer("progress_rate", "required_rate", when_used="always")
    def serialize_rate(self, value: Decimal | None) -> str | None:
        return _rate(value)

    @field_serializer("percent_complete", when_used="always")
    def serialize_pct(self, value: Decimal) -> str:
        return str(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class InsightActionResponse(BaseModel):
    action: Literal["navigate_to_goal", "mark_goal_complete"]
    label: str


class InsightResponse(BaseModel):
    """Insight card; `kind` is mapped to an icon by the client."""
    id: str
    goal_id: UUID
    goal_title: str
    kind: InsightKind
    severity: Literal["critical", "warning", "info", "success"]
    title: str
    description: str
    actionable: InsightActionResponse | None = None


class InsightsSummaryResponse(BaseModel):
    total_goals: int
    goals_on_track: int
    goals_at_risk: int
    goals_critical: int
    goals_completed: int
    generated_on: date
    insights: list[InsightResponse]
    projections: list[ProjectionResponse]
    critical_count: int
    warning_count: int
    info_count: int
    success_count: int


class WhatIfResponse(BaseModel):
    goal_id: UUID
    monthly_amount: Decimal
    current_completion_date: date | None
    new_completion_date: date | None
    days_saved: int
    new_progress_rate: Decimal
    improvement_pct: Decimal

    @field_serializer("monthly_amount", when_used="always")
    def serialize_amount(self, value: Decimal) -> str | None:
        return _amount(value)

    @field_serializer("new_progress_rate", when_used="always")
    def serialize_rate(self, value: Decimal) -> str | None:
        return _rate(value)

    @field_serializer("improvement_pct", when_used="always")
    def serialize_pct(self, value: Decimal) -> str:
        return str(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class RecommendationResponse(BaseModel):
    id: str
    goal_id: UUID
    type: Literal["increase_contribution", "adjust_timeline", "celebrate"]
    title: str
    description: str
    impact: Literal["high", "medium", "low"]
    effort: Literal["high", "medium", "low"]


@router.get("/goals", response_model=InsightsSummaryResponse)
async def goal_insights_summary(
    user_id: UUID = Depends(get_current_user_id),
    connection: AsyncConnection = Depends(get_db_connection),
) -> InsightsSummaryResponse:
    """
    Return projections, drift counters and up to `insights_max_items` insight cards.

    Example insight:
    {
      "id": "falling_behind-6f1c...",
      "kind": "falling_behind",
      "severity": "warning",
      "title": "Falling Behind",
      "description": "\\"Emergency Fund\\" is projected to fall short by $1,200 at its deadline. ...",
      "actionable": {"action": "navigate_to_goal", "label": "Review Goal"}
    }
    """
    summary = await load_insights_summary(
        connection,
        user_id,
        config=_engine_config(),
        history_limit=settings.progress_history_limit,
    )
    return InsightsSummaryResponse.model_validate(asdict(summary))


@router.get("/goals/{goal_id}/what-if", response_model=WhatIfResponse)
async def goal_what_if(
    goal_id: UUID,
    monthly_amount: Decimal = Query(default=Decimal("100"), max_digits=14, decimal_places=2),
    user_id: UUID = Depends(get_current_user_id),
    connection: AsyncConnection = Depends(get_db_connection),
) -> WhatIfResponse:
    """Preview the completion date with an extra monthly contribution. Nothing is saved."""
    try:
        projection, result = await load_goal_what_if(
            connection,
            user_id,
            goal_id,
            monthly_amount,
            config=_engine_config(),
            history_limit=settings.progress_history_limit,
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return WhatIfResponse(
        goal_id=goal_id,
        monthly_amount=monthly_amount,
        current_completion_date=projection.estimated_completion_date,
        **asdict(result),
    )


@router.get("/goals/{goal_id}/recommendations", response_model=list[RecommendationResponse])
async def goal_recommendations(
    goal_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    connection: AsyncConnection = Depends(get_db_connection),
) -> list[RecommendationResponse]:
    """Suggested adjustments for one goal."""
    try:
        recommendations = await load_goal_recommendations(
            connection,
            user_id,
            goal_id,
            config=_engine_config(),
            history_limit=settings.progress_history_limit,
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return [RecommendationResponse.model_validate(asdict(item)) for item in recommendations]
