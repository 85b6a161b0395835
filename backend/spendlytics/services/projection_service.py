"""Completion forecast, shortfall and required pace for one goal."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal, ROUND_CEILING

from .goal_models import (
    DAYS_PER_MONTH,
    Confidence,
    DriftSeverity,
    Goal,
    Projection,
    RateEstimate,
)

HUNDRED = Decimal("100")
# Forecasts further out than this are reported as "no estimate".
MAX_PROJECTION_DAYS = 365 * 100


def is_projectable(goal: Goal) -> bool:
    """Numeric goal with a positive target and a sane timeline."""
    if goal.target_type != "numeric":
        return False
    if goal.target_value is None or goal.target_value <= Decimal("0"):
        return False
    if goal.current_value < Decimal("0"):
        return False
    if goal.start_date is not None and goal.target_date is not None and goal.target_date < goal.start_date:
        return False
    return True


def progress_percent(goal: Goal) -> Decimal:
    """Progress in [0, 100]; boolean goals are all-or-nothing."""
    if goal.target_type == "boolean":
        return HUNDRED if goal.current_value >= HUNDRED else Decimal("0")

    if not is_projectable(goal):
        return Decimal("0")

    pct = goal.current_value / goal.target_value * HUNDRED
    return max(Decimal("0"), min(pct, HUNDRED))


def days_to_complete(remaining: Decimal, rate: Decimal) -> int | None:
    """ceil(remaining / rate) days, or None when the rate never gets there."""
    if remaining <= Decimal("0"):
        return 0
    if rate <= Decimal("0"):
        return None

    days = int((remaining / rate).to_integral_value(rounding=ROUND_CEILING))
    if days > MAX_PROJECTION_DAYS:
        return None
    return days


def completion_date(today: date, remaining: Decimal, rate: Decimal) -> date | None:
    days = days_to_complete(remaining, rate)
    if days is None:
        return None
    return today + timedelta(days=days)


def confidence_for(data_points: int) -> Confidence:
    if data_points >= 10:
        return "high"
    if data_points >= 5:
        return "medium"
    return "low"


def _non_projectable(goal: Goal, estimate: RateEstimate, drift: DriftSeverity, today: date) -> Projection:
    return Projection(
        goal_id=goal.id,
        goal_title=goal.title,
        as_of=today,
        current_value=goal.current_value,
        target_value=goal.target_value,
        percent_complete=progress_percent(goal),
        progress_rate=Decimal("0"),
        progress_rate_monthly=Decimal("0"),
        trend="steady",
        drift=drift,
        on_track=drift == "none",
        estimated_completion_date=None,
        estimated_days_to_complete=None,
        days_remaining=None,
        projected_value_at_deadline=None,
        shortfall=None,
        required_rate=None,
        data_points=estimate.data_points,
        confidence=confidence_for(estimate.data_points),
        is_projectable=False,
    )


def calculate_projection(
    goal: Goal,
    estimate: RateEstimate,
    drift: DriftSeverity,
    *,
    today: date,
) -> Projection:
    """
    Combine a goal, its rate estimate and drift severity into a Projection.

    Rules:
    - completion date = today + ceil(remaining / rate) when rate > 0
    - already complete -> last snapshot date (or today), shortfall 0
    - shortfall only when a deadline exists and the rate is not negative
    - required rate only while days remain before the deadline
    - boolean/milestone or inconsistent goals get no forecast fields
    """
    if not is_projectable(goal):
        return _non_projectable(goal, estimate, drift, today)

    target_value: Decimal = goal.target_value  # type: ignore[assignment]
    current_value = goal.current_value
    rate = estimate.progress_rate
    remaining = target_value - current_value
    is_complete = remaining <= Decimal("0")

    days_remaining = (goal.target_date - today).days if goal.target_date is not None else None

    if is_complete:
        estimated_completion_date = estimate.last_snapshot_date or today
        estimated_days_to_complete: int | None = 0
    else:
        estimated_days_to_complete = days_to_complete(remaining, rate)
        estimated_completion_date = completion_date(today, remaining, rate)

    projected_value_at_deadline: Decimal | None = None
    shortfall: Decimal | None = None
    if is_complete:
        shortfall = Decimal("0")
        if days_remaining is not None:
            projected_value_at_deadline = current_value + max(rate, Decimal("0")) * Decimal(max(days_remaining, 0))
    elif days_remaining is not None and rate >= Decimal("0"):
        # A passed deadline projects the current value.
        projected_value_at_deadline = current_value + rate * Decimal(max(days_remaining, 0))
        shortfall = max(Decimal("0"), target_value - projected_value_at_deadline)

    required_rate: Decimal | None = None
    if days_remaining is not None and days_remaining > 0:
        required_rate = max(Decimal("0"), remaining / Decimal(days_remaining))

    return Projection(
        goal_id=goal.id,
        goal_title=goal.title,
        as_of=today,
        current_value=current_value,
        target_value=target_value,
        percent_complete=progress_percent(goal),
        progress_rate=rate,
        progress_rate_monthly=rate * DAYS_PER_MONTH,
        trend=estimate.trend,
        drift=drift,
        on_track=drift == "none",
        estimated_completion_date=estimated_completion_date,
        estimated_days_to_complete=estimated_days_to_complete,
        days_remaining=days_remaining,
        projected_value_at_deadline=projected_value_at_deadline,
        shortfall=shortfall,
        required_rate=required_rate,
        data_points=estimate.data_points,
        confidence=confidence_for(estimate.data_points),
        is_projectable=True,
    )
