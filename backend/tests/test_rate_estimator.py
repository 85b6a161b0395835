from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from spendlytics.services.goal_models import ProgressSnapshot
from spendlytics.services.rate_estimator import estimate_rate

GOAL_ID = uuid4()


def _snap(day: date, value: str | int) -> ProgressSnapshot:
    return ProgressSnapshot(goal_id=GOAL_ID, date=day, value=Decimal(str(value)))


def _series(values: list[int], *, start: date = date(2024, 6, 1), days_apart: int = 5) -> list[ProgressSnapshot]:
    return [_snap(start + timedelta(days=i * days_apart), value) for i, value in enumerate(values)]


def test_no_history_means_zero_rate_and_steady() -> None:
    estimate = estimate_rate([])

    assert estimate.progress_rate == Decimal("0")
    assert estimate.progress_rate_monthly == Decimal("0")
    assert estimate.trend == "steady"
    assert estimate.data_points == 0
    assert estimate.last_snapshot_date is None


def test_single_snapshot_means_zero_rate_and_steady() -> None:
    estimate = estimate_rate([_snap(date(2024, 3, 1), 500)])

    assert estimate.progress_rate == Decimal("0")
    assert estimate.trend == "steady"
    assert estimate.data_points == 1
    assert estimate.last_snapshot_date == date(2024, 3, 1)


def test_newest_first_history_is_normalized() -> None:
    # Store order: most recent first.
    snapshots = [
        _snap(date(2024, 7, 1), 250_000),
        _snap(date(2024, 1, 1), 200_000),
    ]

    estimate = estimate_rate(snapshots)

    # 50,000 over 182 days.
    assert Decimal("274") < estimate.progress_rate < Decimal("275")
    assert estimate.progress_rate_monthly == estimate.progress_rate * 30
    assert estimate.last_snapshot_date == date(2024, 7, 1)


def test_same_day_snapshots_count_as_one_day() -> None:
    snapshots = [_snap(date(2024, 2, 1), 10), _snap(date(2024, 2, 1), 15)]

    assert estimate_rate(snapshots).progress_rate == Decimal("5")


def test_withdrawal_gives_negative_rate() -> None:
    snapshots = _series([100, 50], days_apart=10)

    assert estimate_rate(snapshots).progress_rate == Decimal("-5")


def test_improving_trend() -> None:
    # Earlier half 2/day, later half 3/day.
    estimate = estimate_rate(_series([10, 20, 30, 50, 65, 80]))

    assert estimate.trend == "improving"
    assert estimate.data_points == 6


def test_declining_trend() -> None:
    # Earlier half 3/day, later half 1/day.
    estimate = estimate_rate(_series([10, 25, 40, 45, 50, 55]))

    assert estimate.trend == "declining"


def test_even_pace_is_steady() -> None:
    estimate = estimate_rate(_series([0, 10, 20, 30], days_apart=1))

    assert estimate.trend == "steady"


def test_three_snapshots_never_classify_a_trend() -> None:
    estimate = estimate_rate(_series([0, 1, 100]))

    assert estimate.trend == "steady"
    assert estimate.progress_rate > Decimal("0")


def test_trend_change_ratio_is_configurable() -> None:
    estimate = estimate_rate(_series([10, 20, 30, 50, 65, 80]), trend_change_ratio=Decimal("0.6"))

    assert estimate.trend == "steady"
