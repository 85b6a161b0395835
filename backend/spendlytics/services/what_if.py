"""Hypothetical contribution scenarios; never touches stored goal state."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from .goal_models import DAYS_PER_MONTH, Goal, Projection, WhatIfResult
from .projection_service import completion_date, days_to_complete, is_projectable

PCT_QUANT = Decimal("0.1")


def calculate_what_if(
    goal: Goal,
    projection: Projection,
    hypothetical_monthly_amount: Decimal,
) -> WhatIfResult:
    """
    Re-run the completion forecast with an extra monthly contribution.

    The new date is computed from the projection's own evaluation date so a
    zero contribution reproduces `projection.estimated_completion_date`.
    """
    new_rate = projection.progress_rate + hypothetical_monthly_amount / DAYS_PER_MONTH

    if not projection.is_projectable or not is_projectable(goal):
        return WhatIfResult(
            new_completion_date=None,
            days_saved=0,
            new_progress_rate=new_rate,
            improvement_pct=Decimal("0.0"),
        )

    remaining = projection.target_value - projection.current_value  # type: ignore[operator]

    if remaining <= Decimal("0"):
        # Already complete; nothing left to accelerate.
        return WhatIfResult(
            new_completion_date=projection.estimated_completion_date,
            days_saved=0,
            new_progress_rate=new_rate,
            improvement_pct=Decimal("0.0"),
        )

    new_completion_date = completion_date(projection.as_of, remaining, new_rate)
    old_completion_date = projection.estimated_completion_date

    days_saved = 0
    if old_completion_date is not None and new_completion_date is not None:
        days_saved = max(0, (old_completion_date - new_completion_date).days)

    improvement_pct = Decimal("0.0")
    old_days = projection.estimated_days_to_complete
    if old_days and days_to_complete(remaining, new_rate) is not None:
        improvement_pct = (Decimal(days_saved) * Decimal("100") / Decimal(old_days)).quantize(
            PCT_QUANT, rounding=ROUND_HALF_UP
        )

    return WhatIfResult(
        new_completion_date=new_completion_date,
        days_saved=days_saved,
        new_progress_rate=new_rate,
        improvement_pct=improvement_pct,
    )
