"""
Goal insight generation.

Design goals:
- deterministic output (no LLM, no clock reads below `_today()`)
- pure: goals, snapshot histories and drift settings in, immutable summary out
- stable ordering: severity first, then goal iteration order
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, ROUND_CEILING
from typing import Iterable, Mapping
from uuid import UUID

from .drift_classifier import classify_drift, expected_progress_pct
from .goal_format import format_goal_value, format_pct
from .goal_models import (
    DAYS_PER_MONTH,
    DEFAULT_DRIFT_SETTINGS,
    DEFAULT_INSIGHT_CONFIG,
    SEVERITY_RANK,
    DriftSettings,
    Goal,
    Insight,
    InsightAction,
    InsightConfig,
    InsightsSummary,
    ProgressSnapshot,
    Projection,
    Recommendation,
)
from .projection_service import calculate_projection
from .rate_estimator import estimate_rate

logger = logging.getLogger(__name__)

MILESTONE_POINTS: tuple[int, ...] = (25, 50, 75, 90, 100)
MILESTONE_APPROACH_PCT = Decimal("10")
MIN_POINTS_FOR_SLOWDOWN = 5
HUNDRED = Decimal("100")

REVIEW_GOAL = InsightAction(action="navigate_to_goal", label="Review Goal")
MARK_COMPLETE = InsightAction(action="mark_goal_complete", label="Mark Complete")


def _today() -> date:
    """Wrapper for deterministic tests."""
    return date.today()


def build_goal_projection(
    goal: Goal,
    snapshots: Iterable[ProgressSnapshot],
    drift_settings: DriftSettings = DEFAULT_DRIFT_SETTINGS,
    *,
    today: date,
    config: InsightConfig = DEFAULT_INSIGHT_CONFIG,
) -> Projection:
    """Run rate estimation, drift classification and projection for one goal."""
    estimate = estimate_rate(snapshots, trend_change_ratio=config.trend_change_ratio)
    drift = classify_drift(goal, drift_settings, today=today, horizon_days=config.horizon_days)
    return calculate_projection(goal, estimate, drift, today=today)


def _money_or_units(value: Decimal, goal: Goal) -> str:
    return format_goal_value(value, goal.target_unit)


def _insight(goal: Goal, kind: str, severity: str, title: str, description: str,
             actionable: InsightAction | None = None) -> Insight:
    return Insight(
        id=f"{kind}-{goal.id}",
        goal_id=goal.id,
        goal_title=goal.title,
        kind=kind,  # type: ignore[arg-type]
        severity=severity,  # type: ignore[arg-type]
        title=title,
        description=description,
        actionable=actionable,
    )


def _next_milestone(percent_complete: Decimal) -> int | None:
    for milestone in MILESTONE_POINTS:
        distance = Decimal(milestone) - percent_complete
        if Decimal("0") < distance <= MILESTONE_APPROACH_PCT:
            return milestone
    return None


def insights_for_goal(
    goal: Goal,
    projection: Projection,
    *,
    today: date,
    config: InsightConfig = DEFAULT_INSIGHT_CONFIG,
) -> list[Insight]:
    """Apply the per-goal insight rules in precedence order."""
    if goal.status in ("completed", "paused"):
        return []

    insights: list[Insight] = []
    title = goal.title
    actual_pct = format_pct(projection.percent_complete)
    expected = expected_progress_pct(goal, today, horizon_days=config.horizon_days)
    expected_pct = format_pct(expected) if expected is not None else None
    is_ready = projection.percent_complete >= HUNDRED
    at_risk = projection.drift in ("warning", "critical")

    # 1) Far behind the straight-line pace.
    if projection.drift == "critical":
        insights.append(
            _insight(
                goal,
                "behind_pace",
                "critical",
                "Behind Pace",
                f'"{title}" is significantly behind. Current progress: {actual_pct}, '
                f"expected: {expected_pct}. Consider adjusting your approach or timeline.",
                REVIEW_GOAL,
            )
        )

    # 2) Drifting; quote the gap when the deadline makes it computable.
    if projection.drift == "warning":
        if projection.shortfall is not None and projection.shortfall > Decimal("0") and projection.required_rate is not None:
            required_monthly = projection.required_rate * DAYS_PER_MONTH
            description = (
                f'"{title}" is projected to fall short by {_money_or_units(projection.shortfall, goal)} '
                f"at its deadline. Reach {_money_or_units(required_monthly, goal)} per month to get back on pace."
            )
        else:
            description = f'"{title}" needs attention. You\'re at {actual_pct} but should be at {expected_pct}.'
        insights.append(
            _insight(goal, "falling_behind", "warning", "Falling Behind", description, REVIEW_GOAL)
        )

    # 3) Target reached but the goal is still open.
    if is_ready:
        insights.append(
            _insight(
                goal,
                "ready_to_complete",
                "info",
                "Ready to Complete",
                f'"{title}" has reached its target. Mark it as complete to celebrate the win.',
                MARK_COMPLETE,
            )
        )

    # 4) At-risk goal that is speeding up.
    if at_risk and projection.trend == "improving":
        insights.append(
            _insight(
                goal,
                "accelerating",
                "info",
                "Accelerating",
                f'"{title}" is behind pace, but your recent progress rate is higher than before.',
            )
        )

    # 5) Sustained slowdown on an open goal.
    if (
        not is_ready
        and projection.trend == "declining"
        and projection.data_points >= MIN_POINTS_FOR_SLOWDOWN
    ):
        insights.append(
            _insight(
                goal,
                "slowing_down",
                "warning",
                "Progress Slowing",
                f'"{title}" progress has slowed down recently. Consider what might be causing this.',
            )
        )

    # 6) Close to the next round-number milestone.
    if projection.drift == "none" and projection.is_projectable and not is_ready:
        milestone = _next_milestone(projection.percent_complete)
        if milestone is not None:
            distance = format_pct(Decimal(milestone) - projection.percent_complete)
            insights.append(
                _insight(
                    goal,
                    "approaching_milestone",
                    "info",
                    f"Approaching {milestone}% Milestone",
                    f'"{title}" is {distance} away from the {milestone}% milestone.',
                )
            )

    # 7) On pace; applies to boolean and milestone goals too.
    if projection.drift == "none" and projection.on_track and not is_ready:
        if projection.days_remaining is not None and projection.days_remaining > 0:
            description = (
                f'"{title}" is progressing well. You\'re {actual_pct} complete '
                f"with {projection.days_remaining} days remaining."
            )
        else:
            description = f'"{title}" is progressing well at {actual_pct} complete.'
        insights.append(_insight(goal, "on_track", "success", "On Track", description))

    return insights


def sort_insights(insights: Iterable[Insight]) -> list[Insight]:
    """Most severe first; sorted() is stable so ties keep goal order."""
    return sorted(insights, key=lambda insight: SEVERITY_RANK[insight.severity])


def generate_insights_summary(
    goals: Iterable[Goal],
    history_by_goal_id: Mapping[UUID, Iterable[ProgressSnapshot]],
    drift_settings: DriftSettings | None = None,
    *,
    today: date | None = None,
    config: InsightConfig = DEFAULT_INSIGHT_CONFIG,
) -> InsightsSummary:
    """
    Build projections, counters and ranked insights for all active goals.

    A goal missing from `history_by_goal_id` is treated as having no snapshots.
    """
    today = today or _today()
    drift_settings = drift_settings or DEFAULT_DRIFT_SETTINGS

    projections: list[Projection] = []
    all_insights: list[Insight] = []
    total_goals = 0
    goals_on_track = 0
    goals_at_risk = 0
    goals_critical = 0
    goals_completed = 0

    for goal in goals:
        if not goal.is_active:
            continue
        total_goals += 1

        snapshots = history_by_goal_id.get(goal.id, ())
        projection = build_goal_projection(goal, snapshots, drift_settings, today=today, config=config)
        projections.append(projection)

        if goal.status == "completed":
            goals_completed += 1
        elif projection.drift == "critical":
            goals_critical += 1
        elif projection.drift == "warning":
            goals_at_risk += 1
        elif goal.status != "paused" and projection.on_track:
            goals_on_track += 1

        goal_insights = insights_for_goal(goal, projection, today=today, config=config)
        logger.debug(
            "goal %s: drift=%s trend=%s insights=%d",
            goal.id,
            projection.drift,
            projection.trend,
            len(goal_insights),
        )
        all_insights.extend(goal_insights)

    ranked = sort_insights(all_insights)
    severity_counts = {severity: 0 for severity in SEVERITY_RANK}
    for insight in ranked:
        severity_counts[insight.severity] += 1

    return InsightsSummary(
        total_goals=total_goals,
        goals_on_track=goals_on_track,
        goals_at_risk=goals_at_risk,
        goals_critical=goals_critical,
        goals_completed=goals_completed,
        generated_on=today,
        insights=tuple(ranked[: config.max_insights]),
        projections=tuple(projections),
        critical_count=severity_counts["critical"],
        warning_count=severity_counts["warning"],
        info_count=severity_counts["info"],
        success_count=severity_counts["success"],
    )


def get_recommendations(goal: Goal, projection: Projection) -> list[Recommendation]:
    """Suggested next steps for one goal, highest impact first."""
    recommendations: list[Recommendation] = []

    if (
        projection.shortfall is not None
        and projection.shortfall > Decimal("0")
        and projection.required_rate is not None
    ):
        monthly_increase = projection.required_rate * DAYS_PER_MONTH - projection.progress_rate_monthly
        recommendations.append(
            Recommendation(
                id=f"rec-increase-{goal.id}",
                goal_id=goal.id,
                type="increase_contribution",
                title="Increase Monthly Contribution",
                description=(
                    "To get back on track, increase your monthly progress by "
                    f"{_money_or_units(monthly_increase, goal)}."
                ),
                impact="high",
                effort="medium",
            )
        )

        if (
            projection.percent_complete < Decimal("50")
            and projection.days_remaining is not None
            and projection.days_remaining < 90
            and projection.progress_rate > Decimal("0")
        ):
            extra_days = int((projection.shortfall / projection.progress_rate).to_integral_value(rounding=ROUND_CEILING))
            recommendations.append(
                Recommendation(
                    id=f"rec-timeline-{goal.id}",
                    goal_id=goal.id,
                    type="adjust_timeline",
                    title="Consider Extending Timeline",
                    description=f"At your current pace, extending the deadline by {extra_days} days would close the gap.",
                    impact="medium",
                    effort="low",
                )
            )

    if projection.on_track and projection.percent_complete > Decimal("75"):
        recommendations.append(
            Recommendation(
                id=f"rec-celebrate-{goal.id}",
                goal_id=goal.id,
                type="celebrate",
                title="You're Doing Great!",
                description=(
                    f'"{goal.title}" is {format_pct(projection.percent_complete)} complete and on track. '
                    "Keep up the excellent work!"
                ),
                impact="low",
                effort="low",
            )
        )

    return recommendations
