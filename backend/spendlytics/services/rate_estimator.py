"""Per-day progress rate and trend from a goal's snapshot history."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from .goal_models import DAYS_PER_MONTH, ProgressSnapshot, RateEstimate, Trend

DEFAULT_TREND_CHANGE_RATIO = Decimal("0.10")
MIN_SNAPSHOTS_FOR_TREND = 4


def chronological(snapshots: Iterable[ProgressSnapshot]) -> list[ProgressSnapshot]:
    """Oldest first; stable for same-day corrections."""
    return sorted(snapshots, key=lambda snapshot: snapshot.date)


def rate_between(snapshots: list[ProgressSnapshot]) -> Decimal:
    """Linear rate from first to last snapshot of an already-sorted list."""
    if len(snapshots) < 2:
        return Decimal("0")

    first = snapshots[0]
    last = snapshots[-1]
    # Same-day snapshots count as one day apart.
    days_between = max((last.date - first.date).days, 1)
    return (last.value - first.value) / Decimal(days_between)


def classify_trend(
    snapshots: list[ProgressSnapshot],
    *,
    trend_change_ratio: Decimal = DEFAULT_TREND_CHANGE_RATIO,
) -> Trend:
    """Compare the later half's rate to the earlier half's rate."""
    if len(snapshots) < MIN_SNAPSHOTS_FOR_TREND:
        return "steady"

    midpoint = len(snapshots) // 2
    earlier_rate = rate_between(snapshots[:midpoint])
    later_rate = rate_between(snapshots[midpoint:])

    if later_rate > earlier_rate * (Decimal("1") + trend_change_ratio):
        return "improving"
    if later_rate < earlier_rate * (Decimal("1") - trend_change_ratio):
        return "declining"
    return "steady"


def estimate_rate(
    snapshots: Iterable[ProgressSnapshot],
    *,
    trend_change_ratio: Decimal = DEFAULT_TREND_CHANGE_RATIO,
) -> RateEstimate:
    """
    Derive progress rate (units/day), its monthly equivalent and a trend.

    Snapshots may arrive newest first (as the store returns them); they are
    re-ordered chronologically here. Fewer than two snapshots yields rate 0
    and a steady trend.
    """
    ordered = chronological(snapshots)
    last_snapshot_date = ordered[-1].date if ordered else None

    if len(ordered) < 2:
        return RateEstimate(
            progress_rate=Decimal("0"),
            progress_rate_monthly=Decimal("0"),
            trend="steady",
            data_points=len(ordered),
            last_snapshot_date=last_snapshot_date,
        )

    progress_rate = rate_between(ordered)
    return RateEstimate(
        progress_rate=progress_rate,
        progress_rate_monthly=progress_rate * DAYS_PER_MONTH,
        trend=classify_trend(ordered, trend_change_ratio=trend_change_ratio),
        data_points=len(ordered),
        last_snapshot_date=last_snapshot_date,
    )
