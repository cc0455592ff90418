"""Analytics builders — health trend and health score over stored metrics and goals."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from goaltrack.fitness import features, store
from goaltrack.fitness.models import HealthScore, HealthTrend, Recommendations
from goaltrack.fitness.store import persistence_step


async def build_health_trend(
    session: AsyncSession,
    user_id: str,
    metric_type: str,
    days: int,
    now: datetime | None = None,
) -> HealthTrend:
    since = features.window_start(days, now)
    with persistence_step("health_trend"):
        metrics = await store.fetch_metrics(session, user_id, since, metric_type)
    points = [(m.recorded_at, m.value) for m in metrics]
    return HealthTrend(metric_type=metric_type, days=days, trend=features.daily_trend(points))


async def build_health_score(
    session: AsyncSession,
    user_id: str,
    days: int,
    now: datetime | None = None,
) -> HealthScore:
    since = features.window_start(days, now)
    with persistence_step("health_score"):
        metric_count = await store.count_metrics(session, user_id, since)
        active_goals = await store.fetch_all_active_goals(session, user_id)
    return features.health_score(metric_count, active_goals)


async def build_recommendations(session: AsyncSession, user_id: str) -> Recommendations:
    with persistence_step("recommendations"):
        active_goals = await store.fetch_all_active_goals(session, user_id)
    return Recommendations(recommendations=features.recommendations(active_goals))
