"""
Storage boundary for the insight engine.

All reads happen here and are awaited before any computation; the engine
modules never see a connection. Progress history is returned newest first.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from psycopg import Error as DatabaseError

from .goal_models import (
    DEFAULT_DRIFT_SETTINGS,
    DEFAULT_INSIGHT_CONFIG,
    DriftSettings,
    Goal,
    InsightConfig,
    InsightsSummary,
    ProgressSnapshot,
    Projection,
    Recommendation,
    WhatIfResult,
)
from .insights_engine import build_goal_projection, generate_insights_summary, get_recommendations
from .what_if import calculate_what_if

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 60


def _today() -> date:
    """Wrapper for deterministic tests."""
    return date.today()


GOAL_COLUMNS = """
    g.id, g.title, g.category_id, c.name AS category_name, g.target_type, g.target_value,
    g.current_value, g.target_unit, g.start_date, g.target_date, g.status, g.is_active
"""


async def list_active_goals(connection: AsyncConnection, user_id: UUID) -> list[Goal]:
    """Active goals for the user, oldest first so insight ties stay stable."""
    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            SELECT {GOAL_COLUMNS}
            FROM life_goals g
            LEFT JOIN goal_categories c ON c.id = g.category_id
            WHERE g.user_id = %s
              AND g.is_active = true
            ORDER BY g.created_at ASC, g.id ASC
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()

    goals: list[Goal] = []
    for row in rows:
        # A row with an unknown status or target type is skipped, not fatal.
        try:
            goals.append(Goal.from_row(row))
        except ValueError:
            logger.warning("Skipping goal %s with invalid data", row.get("id"), exc_info=True)
    return goals


async def get_goal(connection: AsyncConnection, user_id: UUID, goal_id: UUID) -> Goal:
    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            SELECT {GOAL_COLUMNS}
            FROM life_goals g
            LEFT JOIN goal_categories c ON c.id = g.category_id
            WHERE g.id = %s
              AND g.user_id = %s
            """,
            (goal_id, user_id),
        )
        row = await cursor.fetchone()

    if row is None:
        raise LookupError("Goal not found")
    return Goal.from_row(row)


async def get_progress_history(
    connection: AsyncConnection,
    user_id: UUID,
    goal_id: UUID,
    max_snapshots: int = DEFAULT_HISTORY_LIMIT,
) -> list[ProgressSnapshot]:
    """Most recent `max_snapshots` snapshots, newest first."""
    if max_snapshots < 1:
        return []

    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT goal_id, date, value
            FROM goal_progress_snapshots
            WHERE user_id = %s
              AND goal_id = %s
            ORDER BY date DESC
            LIMIT %s
            """,
            (user_id, goal_id, max_snapshots),
        )
        rows = await cursor.fetchall()

    return [ProgressSnapshot.from_row(row) for row in rows]


async def get_drift_settings(
    connection: AsyncConnection,
    user_id: UUID,
    defaults: DriftSettings = DEFAULT_DRIFT_SETTINGS,
) -> DriftSettings:
    """User thresholds; `defaults` (10% / 25% behind pace) when unset."""
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT warning_threshold, critical_threshold
            FROM user_drift_settings
            WHERE user_id = %s
            """,
            (user_id,),
        )
        row = await cursor.fetchone()

    if row is None:
        return defaults

    warning = row["warning_threshold"]
    critical = row["critical_threshold"]
    return DriftSettings(
        warning_threshold=Decimal(str(warning)) if warning is not None else defaults.warning_threshold,
        critical_threshold=Decimal(str(critical)) if critical is not None else defaults.critical_threshold,
    )


async def _history_or_empty(
    connection: AsyncConnection,
    user_id: UUID,
    goal_id: UUID,
    max_snapshots: int,
) -> list[ProgressSnapshot]:
    # One unreadable history must not sink the whole summary.
    try:
        return await get_progress_history(connection, user_id, goal_id, max_snapshots)
    except DatabaseError:
        logger.warning("Could not load progress history for goal %s; using empty history", goal_id, exc_info=True)
        return []


async def load_insights_summary(
    connection: AsyncConnection,
    user_id: UUID,
    *,
    today: date | None = None,
    config: InsightConfig = DEFAULT_INSIGHT_CONFIG,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> InsightsSummary:
    """Fetch goals, histories and settings once, then run the engine."""
    goals = await list_active_goals(connection, user_id)
    drift_settings = await get_drift_settings(connection, user_id, config.drift_defaults)

    history_by_goal_id: dict[UUID, list[ProgressSnapshot]] = {}
    for goal in goals:
        history_by_goal_id[goal.id] = await _history_or_empty(connection, user_id, goal.id, history_limit)

    logger.info("Generating goal insights for user %s (%d goals)", user_id, len(goals))
    return generate_insights_summary(
        goals,
        history_by_goal_id,
        drift_settings,
        today=today or _today(),
        config=config,
    )


async def load_goal_projection(
    connection: AsyncConnection,
    user_id: UUID,
    goal_id: UUID,
    *,
    today: date | None = None,
    config: InsightConfig = DEFAULT_INSIGHT_CONFIG,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> tuple[Goal, Projection]:
    goal = await get_goal(connection, user_id, goal_id)
    drift_settings = await get_drift_settings(connection, user_id, config.drift_defaults)
    history = await get_progress_history(connection, user_id, goal_id, history_limit)
    projection = build_goal_projection(goal, history, drift_settings, today=today or _today(), config=config)
    return goal, projection


async def load_goal_what_if(
    connection: AsyncConnection,
    user_id: UUID,
    goal_id: UUID,
    hypothetical_monthly_amount: Decimal,
    *,
    today: date | None = None,
    config: InsightConfig = DEFAULT_INSIGHT_CONFIG,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> tuple[Projection, WhatIfResult]:
    """Projection plus what-if result for one goal; read-only."""
    goal, projection = await load_goal_projection(
        connection, user_id, goal_id, today=today, config=config, history_limit=history_limit
    )
    return projection, calculate_what_if(goal, projection, hypothetical_monthly_amount)


async def load_goal_recommendations(
    connection: AsyncConnection,
    user_id: UUID,
    goal_id: UUID,
    *,
    today: date | None = None,
    config: InsightConfig = DEFAULT_INSIGHT_CONFIG,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> list[Recommendation]:
    goal, projection = await load_goal_projection(
        connection, user_id, goal_id, today=today, config=config, history_limit=history_limit
    )
    return get_recommendations(goal, projection)
