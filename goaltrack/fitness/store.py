"""Store access — async reads and writes against health_metrics, fitness_goals, achievements.

Functions here never commit; the caller owns the transaction boundary.
Timestamps are written as UTC and read back as aware UTC datetimes, since
some backends (SQLite) hand back naive values.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from goaltrack.fitness.errors import GoalTrackError, PersistenceError
from goaltrack.fitness.features import as_utc
from goaltrack.fitness.models import Achievement, FitnessGoal, GoalIn, GoalStatus, HealthMetric
from goaltrack.fitness.tables import achievements, fitness_goals, health_metrics

logger = logging.getLogger(__name__)

# Dialects whose INSERT supports ON CONFLICT DO NOTHING
_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@contextmanager
def persistence_step(step: str) -> Iterator[None]:
    """Turn any SQLAlchemy failure inside the block into a PersistenceError for `step`."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store failure during %s", step)
        raise PersistenceError(step, exc.__class__.__name__) from exc


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_fields(row: Any, *names: str) -> dict[str, Any]:
    data = dict(row._mapping)
    for name in names:
        if data.get(name) is not None:
            data[name] = as_utc(data[name])
    return data


def _to_metric(row: Any) -> HealthMetric:
    return HealthMetric(**_utc_fields(row, "recorded_at", "created_at"))


def _to_goal(row: Any) -> FitnessGoal:
    return FitnessGoal(**_utc_fields(row, "start_date", "end_date"))


def _to_achievement(row: Any) -> Achievement:
    return Achievement(**_utc_fields(row, "earned_at"))


# ---------------------------------------------------------------------------
# health_metrics
# ---------------------------------------------------------------------------


async def insert_metric(
    session: AsyncSession,
    user_id: str,
    metric_type: str,
    value: float,
    unit: str | None,
    recorded_at: datetime,
    source: str | None = None,
) -> HealthMetric:
    values = {
        "id": _new_id(),
        "user_id": user_id,
        "type": metric_type,
        "value": value,
        "unit": unit,
        "recorded_at": as_utc(recorded_at),
        "source": source,
        "created_at": datetime.now(timezone.utc),
    }
    await session.execute(insert(health_metrics).values(**values))
    return HealthMetric(**values)


async def sum_metric_values(
    session: AsyncSession,
    user_id: str,
    metric_type: str,
    since: datetime,
    until: datetime | None = None,
) -> float:
    """Sum of `value` for the user's metrics of `metric_type` recorded in [since, until].

    `until` is optional; without it the window is open-ended. Returns 0.0
    when nothing matches.
    """
    stmt = select(func.coalesce(func.sum(health_metrics.c.value), 0.0)).where(
        health_metrics.c.user_id == user_id,
        health_metrics.c.type == metric_type,
        health_metrics.c.recorded_at >= as_utc(since),
    )
    if until is not None:
        stmt = stmt.where(health_metrics.c.recorded_at <= as_utc(until))
    result = await session.execute(stmt)
    return float(result.scalar_one())


async def fetch_metrics(
    session: AsyncSession,
    user_id: str,
    since: datetime,
    metric_type: str | None = None,
) -> list[HealthMetric]:
    """Metrics recorded on/after `since`, oldest first. `metric_type=None` returns every type."""
    stmt = select(health_metrics).where(
        health_metrics.c.user_id == user_id,
        health_metrics.c.recorded_at >= as_utc(since),
    )
    if metric_type is not None:
        stmt = stmt.where(health_metrics.c.type == metric_type)
    stmt = stmt.order_by(health_metrics.c.recorded_at.asc())
    result = await session.execute(stmt)
    return [_to_metric(r) for r in result.fetchall()]


async def count_metrics(session: AsyncSession, user_id: str, since: datetime) -> int:
    stmt = select(func.count()).select_from(health_metrics).where(
        health_metrics.c.user_id == user_id,
        health_metrics.c.recorded_at >= as_utc(since),
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())


# ---------------------------------------------------------------------------
# fitness_goals
# ---------------------------------------------------------------------------


async def insert_goal(session: AsyncSession, user_id: str, goal: GoalIn) -> FitnessGoal:
    values = {
        "id": _new_id(),
        "user_id": user_id,
        "title": goal.title,
        "category": goal.category,
        "target_value": goal.target_value,
        "current_value": 0.0,
        "unit": goal.unit,
        "start_date": as_utc(goal.start_date or datetime.now(timezone.utc)),
        "end_date": as_utc(goal.end_date) if goal.end_date else None,
        "status": GoalStatus.active.value,
    }
    await session.execute(insert(fitness_goals).values(**values))
    return FitnessGoal(**values)


async def fetch_active_goals(session: AsyncSession, user_id: str, category: str) -> list[FitnessGoal]:
    stmt = (
        select(fitness_goals)
        .where(
            fitness_goals.c.user_id == user_id,
            fitness_goals.c.status == GoalStatus.active.value,
            fitness_goals.c.category == category,
        )
        .order_by(fitness_goals.c.start_date.asc())
    )
    result = await session.execute(stmt)
    return [_to_goal(r) for r in result.fetchall()]


async def fetch_all_active_goals(session: AsyncSession, user_id: str) -> list[FitnessGoal]:
    stmt = select(fitness_goals).where(
        fitness_goals.c.user_id == user_id,
        fitness_goals.c.status == GoalStatus.active.value,
    )
    result = await session.execute(stmt)
    return [_to_goal(r) for r in result.fetchall()]


async def fetch_goals(session: AsyncSession, user_id: str) -> list[FitnessGoal]:
    """All of the user's goals, newest start_date first."""
    stmt = (
        select(fitness_goals)
        .where(fitness_goals.c.user_id == user_id)
        .order_by(fitness_goals.c.start_date.desc())
    )
    result = await session.execute(stmt)
    return [_to_goal(r) for r in result.fetchall()]


async def update_goal_progress(
    session: AsyncSession,
    goal_id: str,
    current_value: float,
    status: GoalStatus,
) -> None:
    stmt = (
        update(fitness_goals)
        .where(fitness_goals.c.id == goal_id)
        .values(current_value=current_value, status=status.value)
    )
    await session.execute(stmt)


# ---------------------------------------------------------------------------
# achievements
# ---------------------------------------------------------------------------


async def insert_achievement_if_absent(
    session: AsyncSession,
    user_id: str,
    title: str,
    description: str,
    points: int,
    level: int,
) -> Achievement | None:
    """Insert an achievement unless (user_id, title) already exists.

    A single INSERT ... ON CONFLICT DO NOTHING against uq_achievements_user_title,
    so two concurrent callers cannot both insert. Returns the new row, or None
    when the title was already earned.
    """
    dialect = session.get_bind().dialect.name
    conflict_insert = _CONFLICT_INSERTS.get(dialect)
    if conflict_insert is None:
        raise GoalTrackError(f"Conditional insert not supported on dialect '{dialect}'")

    values = {
        "id": _new_id(),
        "user_id": user_id,
        "title": title,
        "description": description,
        "points": points,
        "level": level,
        "earned_at": datetime.now(timezone.utc),
    }
    stmt = (
        conflict_insert(achievements)
        .values(**values)
        .on_conflict_do_nothing(index_elements=["user_id", "title"])
        .returning(achievements.c.id)
    )
    result = await session.execute(stmt)
    if result.scalar_one_or_none() is None:
        return None
    return Achievement(**values)


async def fetch_achievements(session: AsyncSession, user_id: str) -> list[Achievement]:
    """The user's achievements, most recently earned first."""
    stmt = (
        select(achievements)
        .where(achievements.c.user_id == user_id)
        .order_by(achievements.c.earned_at.desc())
    )
    result = await session.execute(stmt)
    return [_to_achievement(r) for r in result.fetchall()]
