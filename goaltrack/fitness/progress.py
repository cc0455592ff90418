"""Goal progress engine — runs after every metric ingestion.

ingest_metric
  1. store the metric (no validation of type or value)
  2. match_goals:         active goals whose category is mapped from the metric type
  3. aggregate_progress:  sum of same-type metrics since each goal's start_date
  4. update_goal_state:   write current_value, completed iff current_value >= target_value
  5. award_achievement:   "Winner: {title}" once per user, conflict-ignoring insert

Steps run sequentially inside the caller's request. Any store failure aborts
the remaining steps and surfaces as PersistenceError. With atomic=False each
step commits on its own, so work done before the failure stays committed;
with atomic=True the ingestion commits once at the end or not at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from goaltrack.config import Settings, settings
from goaltrack.fitness import features, store
from goaltrack.fitness.category_map import UNMAPPED_POLICIES, get_category
from goaltrack.fitness.errors import GoalTrackError, UnmappedMetricType
from goaltrack.fitness.models import Achievement, FitnessGoal, IngestionResult, MetricIn
from goaltrack.fitness.store import persistence_step

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EngineOptions:
    respect_end_date: bool = False
    atomic: bool = False
    unmapped_policy: str = "ignore"  # "ignore" | "error"
    achievement_points: int = 100
    achievement_level: int = 1

    def __post_init__(self) -> None:
        if self.unmapped_policy not in UNMAPPED_POLICIES:
            raise ValueError(f"Unknown unmapped metric policy: {self.unmapped_policy}")

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> EngineOptions:
        return cls(
            respect_end_date=cfg.goals_respect_end_date,
            atomic=cfg.goals_atomic_ingestion,
            unmapped_policy=cfg.goals_unmapped_metric_policy,
            achievement_points=cfg.achievement_points,
            achievement_level=cfg.achievement_level,
        )


async def match_goals(session: AsyncSession, user_id: str, metric_type: str) -> list[FitnessGoal]:
    """Active goals fed by `metric_type`. Unmapped types match nothing."""
    category = get_category(metric_type)
    if category is None:
        return []
    with persistence_step("match_goals"):
        return await store.fetch_active_goals(session, user_id, category)


async def aggregate_progress(
    session: AsyncSession,
    user_id: str,
    metric_type: str,
    goal: FitnessGoal,
    respect_end_date: bool = False,
) -> float:
    """Raw sum of the user's `metric_type` values recorded since the goal started.

    Units are not converted. The goal's end_date bounds the window only when
    `respect_end_date` is set.
    """
    until = goal.end_date if respect_end_date else None
    with persistence_step("aggregate_progress"):
        total = await store.sum_metric_values(session, user_id, metric_type, goal.start_date, until)
    logger.debug("Goal %s (%s): aggregate %s of %s", goal.id, metric_type, total, goal.target_value)
    return total


async def update_goal_state(session: AsyncSession, goal: FitnessGoal, current_value: float) -> FitnessGoal:
    status = features.next_status(current_value, goal.target_value)
    with persistence_step("update_goal_state"):
        await store.update_goal_progress(session, goal.id, current_value, status)
    return goal.model_copy(update={"current_value": current_value, "status": status})


async def award_achievement(
    session: AsyncSession,
    user_id: str,
    goal_title: str,
    points: int = 100,
    level: int = 1,
) -> Achievement | None:
    """Grant "Winner: {goal_title}" unless the user already holds it."""
    title = features.achievement_title(goal_title)
    with persistence_step("award_achievement"):
        achievement = await store.insert_achievement_if_absent(
            session,
            user_id,
            title,
            features.achievement_description(goal_title),
            points,
            level,
        )
    if achievement is None:
        logger.warning("Achievement %r already earned by user %s; skipped", title, user_id)
    else:
        logger.info("Achievement %r awarded to user %s", title, user_id)
    return achievement


async def _commit_step(session: AsyncSession, options: EngineOptions, step: str) -> None:
    if options.atomic:
        return
    with persistence_step(step):
        await session.commit()


async def _run(
    session: AsyncSession,
    user_id: str,
    payload: MetricIn,
    options: EngineOptions,
    now: datetime,
) -> IngestionResult:
    category = get_category(payload.type)
    if category is None and options.unmapped_policy == "error":
        logger.warning("Rejected metric of unmapped type %r for user %s", payload.type, user_id)
        raise UnmappedMetricType(payload.type)

    with persistence_step("store_metric"):
        metric = await store.insert_metric(
            session,
            user_id,
            payload.type,
            payload.value,
            payload.unit,
            payload.recorded_at or now,
            payload.source,
        )
    await _commit_step(session, options, "store_metric")
    logger.info("Stored %s=%s for user %s", metric.type, metric.value, user_id)

    result = IngestionResult(metric=metric, category=category)

    for goal in await match_goals(session, user_id, payload.type):
        total = await aggregate_progress(session, user_id, payload.type, goal, options.respect_end_date)
        updated = await update_goal_state(session, goal, total)
        await _commit_step(session, options, "update_goal_state")
        result.goals.append(updated)

        # Re-check the predicate on the written value rather than diffing statuses
        if features.is_target_met(updated.current_value, updated.target_value):
            result.completed_goal_ids.append(updated.id)
            logger.info("Goal %s (%r) completed for user %s", updated.id, updated.title, user_id)
            achievement = await award_achievement(
                session,
                user_id,
                updated.title,
                options.achievement_points,
                options.achievement_level,
            )
            await _commit_step(session, options, "award_achievement")
            if achievement is not None:
                result.achievements.append(achievement)

    return result


async def ingest_metric(
    session: AsyncSession,
    user_id: str,
    payload: MetricIn,
    options: EngineOptions | None = None,
    now: datetime | None = None,
) -> IngestionResult:
    """Store one metric and bring the user's matching goals up to date."""
    options = options or EngineOptions.from_settings()
    now = now or datetime.now(timezone.utc)

    try:
        result = await _run(session, user_id, payload, options, now)
        if options.atomic:
            with persistence_step("commit"):
                await session.commit()
    except GoalTrackError:
        await session.rollback()
        raise
    return result
