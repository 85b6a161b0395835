from __future__ import annotations

import random
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from spendlytics.services.goal_models import Goal, ProgressSnapshot, RateEstimate
from spendlytics.services.insights_engine import build_goal_projection
from spendlytics.services.projection_service import calculate_projection, confidence_for, progress_percent

TODAY = date(2024, 7, 1)


def _goal(**overrides) -> Goal:
    base = {
        "id": uuid4(),
        "title": "Emergency Fund",
        "target_type": "numeric",
        "target_value": Decimal("1000"),
        "current_value": Decimal("400"),
        "target_unit": "$",
        "start_date": date(2024, 1, 1),
        "target_date": date(2024, 12, 31),
        "status": "in_progress",
    }
    base.update(overrides)
    return Goal(**base)


def _estimate(rate: str | Decimal, *, data_points: int = 2, last: date | None = None) -> RateEstimate:
    rate = Decimal(str(rate))
    return RateEstimate(
        progress_rate=rate,
        progress_rate_monthly=rate * 30,
        trend="steady",
        data_points=data_points,
        last_snapshot_date=last,
    )


def test_down_payment_scenario() -> None:
    goal = _goal(
        title="Down Payment",
        target_value=Decimal("1000000"),
        current_value=Decimal("250000"),
        target_date=date(2025, 1, 1),
    )
    history = [
        ProgressSnapshot(goal_id=goal.id, date=date(2024, 7, 1), value=Decimal("250000")),
        ProgressSnapshot(goal_id=goal.id, date=date(2024, 1, 1), value=Decimal("200000")),
    ]

    projection = build_goal_projection(goal, history, today=TODAY)

    assert Decimal("274") < projection.progress_rate < Decimal("275")
    assert projection.percent_complete == Decimal("25")
    assert projection.drift == "warning"
    assert projection.on_track is False
    assert projection.days_remaining == 184
    assert projection.required_rate == Decimal("750000") / Decimal("184")
    assert Decimal("699000") < projection.shortfall < Decimal("700000")
    assert projection.estimated_completion_date > goal.target_date


def test_completion_date_from_rate() -> None:
    projection = calculate_projection(_goal(), _estimate("2"), "none", today=TODAY)

    # 600 remaining at 2/day.
    assert projection.estimated_days_to_complete == 300
    assert projection.estimated_completion_date == TODAY + timedelta(days=300)
    assert projection.on_track is True


def test_completion_days_round_up() -> None:
    projection = calculate_projection(_goal(), _estimate("7"), "none", today=TODAY)

    # 600 / 7 = 85.7 days.
    assert projection.estimated_days_to_complete == 86


def test_shortfall_and_required_rate_with_deadline() -> None:
    projection = calculate_projection(_goal(), _estimate("1"), "warning", today=TODAY)

    assert projection.days_remaining == 183
    assert projection.projected_value_at_deadline == Decimal("583")
    assert projection.shortfall == Decimal("417")
    assert projection.required_rate == Decimal("600") / Decimal("183")


def test_fast_pace_has_zero_shortfall() -> None:
    projection = calculate_projection(_goal(), _estimate("10"), "none", today=TODAY)

    assert projection.shortfall == Decimal("0")


@pytest.mark.parametrize("rate", ["0", "-3"])
def test_no_deadline_and_no_progress_has_no_forecast(rate: str) -> None:
    goal = _goal(target_date=None)

    projection = calculate_projection(goal, _estimate(rate), "none", today=TODAY)

    assert projection.estimated_completion_date is None
    assert projection.estimated_days_to_complete is None
    assert projection.shortfall is None
    assert projection.days_remaining is None
    assert projection.required_rate is None


def test_negative_rate_with_deadline_has_no_shortfall() -> None:
    projection = calculate_projection(_goal(), _estimate("-1"), "warning", today=TODAY)

    assert projection.shortfall is None
    assert projection.required_rate is not None


def test_passed_deadline_projects_current_value() -> None:
    goal = _goal(target_date=date(2024, 6, 1))

    projection = calculate_projection(goal, _estimate("1"), "critical", today=TODAY)

    assert projection.days_remaining == -30
    assert projection.shortfall == Decimal("600")
    assert projection.required_rate is None


@pytest.mark.parametrize("target_date", [date(2024, 12, 31), None])
def test_completed_goal_caps_percent_and_has_no_shortfall(target_date) -> None:
    goal = _goal(current_value=Decimal("1250"), target_date=target_date)

    projection = calculate_projection(goal, _estimate("5", last=date(2024, 6, 20)), "none", today=TODAY)

    assert projection.percent_complete == Decimal("100")
    assert projection.shortfall == Decimal("0")
    assert projection.estimated_completion_date == date(2024, 6, 20)
    assert projection.estimated_days_to_complete == 0


def test_completed_goal_without_history_completes_today() -> None:
    goal = _goal(current_value=Decimal("1000"))

    projection = calculate_projection(goal, _estimate("0", data_points=0), "none", today=TODAY)

    assert projection.estimated_completion_date == TODAY
    assert projection.required_rate == Decimal("0")


@pytest.mark.parametrize(
    "overrides",
    [
        {"target_type": "milestone", "target_value": None},
        {"target_value": Decimal("-100")},
        {"target_value": Decimal("0")},
        {"start_date": date(2024, 6, 1), "target_date": date(2024, 1, 1)},
    ],
)
def test_non_projectable_goals_degrade_without_raising(overrides: dict) -> None:
    projection = calculate_projection(_goal(**overrides), _estimate("4"), "none", today=TODAY)

    assert projection.is_projectable is False
    assert projection.progress_rate == Decimal("0")
    assert projection.trend == "steady"
    assert projection.estimated_completion_date is None
    assert projection.shortfall is None
    assert projection.required_rate is None
    assert projection.percent_complete == Decimal("0")


def test_boolean_goal_progress_is_all_or_nothing() -> None:
    assert progress_percent(_goal(target_type="boolean", target_value=None, current_value=Decimal("100"))) == Decimal("100")
    assert progress_percent(_goal(target_type="boolean", target_value=None, current_value=Decimal("40"))) == Decimal("0")


def test_confidence_levels() -> None:
    assert confidence_for(0) == "low"
    assert confidence_for(4) == "low"
    assert confidence_for(5) == "medium"
    assert confidence_for(10) == "high"


@pytest.mark.parametrize("seed", [1, 7, 42, 2024, 99991])
def test_completion_date_never_moves_later_as_rate_increases(seed: int) -> None:
    rng = random.Random(seed)
    goal = _goal(current_value=Decimal(rng.randint(0, 999)))
    rates = sorted(Decimal(str(round(rng.uniform(-5, 50), 4))) for _ in range(40))

    completion_dates = [
        calculate_projection(goal, _estimate(rate), "none", today=TODAY).estimated_completion_date
        for rate in rates
    ]

    # "No estimate" ranks as later than any real date.
    as_ordinals = [d.toordinal() if d is not None else date.max.toordinal() for d in completion_dates]
    assert all(later <= earlier for earlier, later in zip(as_ordinals, as_ordinals[1:]))
