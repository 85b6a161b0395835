"""Drift severity: how far a goal lags a straight-line pace toward its target."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from .goal_models import DEFAULT_DRIFT_SETTINGS, DriftSettings, DriftSeverity, Goal
from .projection_service import is_projectable, progress_percent

DEFAULT_HORIZON_DAYS = 365
HUNDRED = Decimal("100")


def expected_progress_pct(
    goal: Goal,
    today: date,
    *,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> Decimal | None:
    """
    Percent the goal should have reached by `today` on a linear pace.

    Goals without a target date are paced over a rolling horizon measured
    from their start date. Returns None when no pace can be defined.
    """
    if goal.start_date is None or not is_projectable(goal):
        return None

    if goal.target_date is not None:
        total_days = (goal.target_date - goal.start_date).days
    else:
        total_days = horizon_days

    if total_days <= 0:
        return None

    elapsed_days = (today - goal.start_date).days
    elapsed_days = max(0, min(elapsed_days, total_days))
    return Decimal(elapsed_days) * HUNDRED / Decimal(total_days)


def classify_drift(
    goal: Goal,
    settings: DriftSettings = DEFAULT_DRIFT_SETTINGS,
    *,
    today: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> DriftSeverity:
    """Map pace deviation (percentage points) onto none/warning/critical."""
    if goal.status in ("completed", "paused"):
        return "none"

    expected_pct = expected_progress_pct(goal, today, horizon_days=horizon_days)
    if expected_pct is None:
        return "none"

    deviation = expected_pct - progress_percent(goal)

    if deviation >= settings.critical_threshold * HUNDRED:
        return "critical"
    if deviation >= settings.warning_threshold * HUNDRED:
        return "warning"
    return "none"
