"""Fitness HTTP router — metrics, goals, achievements, analytics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from goaltrack.auth import current_user_id, verify_api_key
from goaltrack.config import settings
from goaltrack.db import get_session
from goaltrack.fitness import analytics, store
from goaltrack.fitness.errors import GoalTrackError, PersistenceError, UnmappedMetricType
from goaltrack.fitness.features import window_start
from goaltrack.fitness.models import (
    Achievement,
    FitnessGoal,
    GoalIn,
    HealthMetric,
    HealthScore,
    HealthTrend,
    MetricIn,
    Recommendations,
)
from goaltrack.fitness.progress import EngineOptions, ingest_metric
from goaltrack.fitness.store import persistence_step

router = APIRouter(prefix="/fitness", tags=["fitness"], dependencies=[Depends(verify_api_key)])


def get_engine_options() -> EngineOptions:
    return EngineOptions.from_settings(settings)


def _server_error(message: str) -> HTTPException:
    return HTTPException(status_code=500, detail=message)


# ---------------------------------------------------------------------------
# /fitness/metrics
# ---------------------------------------------------------------------------


@router.post("/metrics", response_model=HealthMetric, status_code=201)
async def log_metric(
    body: MetricIn,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
    options: EngineOptions = Depends(get_engine_options),
) -> HealthMetric:
    try:
        result = await ingest_metric(session, user_id, body, options)
    except UnmappedMetricType as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except GoalTrackError:
        raise _server_error("Failed to log metric")
    return result.metric


@router.get("/metrics", response_model=list[HealthMetric])
async def get_metrics(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
    metric_type: str | None = Query(default=None, alias="type", description="Metric type (omit for all)"),
    days: int = Query(default=settings.metrics_default_days, ge=1, le=365),
) -> list[HealthMetric]:
    try:
        with persistence_step("list_metrics"):
            return await store.fetch_metrics(session, user_id, window_start(days), metric_type)
    except PersistenceError:
        raise _server_error("Failed to fetch metrics")


@router.get("/metrics/trend", response_model=HealthTrend)
async def get_health_trend(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
    metric_type: str = Query(default="steps"),
    days: int = Query(default=settings.trend_default_days, ge=1, le=365),
) -> HealthTrend:
    try:
        return await analytics.build_health_trend(session, user_id, metric_type, days)
    except PersistenceError:
        raise _server_error("Failed to fetch trends")


@router.get("/score", response_model=HealthScore)
async def get_health_score(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> HealthScore:
    try:
        return await analytics.build_health_score(session, user_id, settings.score_window_days)
    except PersistenceError:
        raise _server_error("Failed to calculate score")


@router.get("/recommendations", response_model=Recommendations)
async def get_recommendations(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> Recommendations:
    try:
        return await analytics.build_recommendations(session, user_id)
    except PersistenceError:
        raise _server_error("Failed to fetch recommendations")


# ---------------------------------------------------------------------------
# /fitness/goals
# ---------------------------------------------------------------------------


@router.get("/goals", response_model=list[FitnessGoal])
async def get_goals(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> list[FitnessGoal]:
    try:
        with persistence_step("list_goals"):
            return await store.fetch_goals(session, user_id)
    except PersistenceError:
        raise _server_error("Failed to fetch goals")


@router.post("/goals", response_model=FitnessGoal, status_code=201)
async def create_goal(
    body: GoalIn,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> FitnessGoal:
    try:
        with persistence_step("create_goal"):
            goal = await store.insert_goal(session, user_id, body)
            await session.commit()
    except PersistenceError:
        await session.rollback()
        raise _server_error("Failed to create goal")
    return goal


# ---------------------------------------------------------------------------
# /fitness/achievements
# ---------------------------------------------------------------------------


@router.get("/achievements", response_model=list[Achievement])
async def get_achievements(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> list[Achievement]:
    try:
        with persistence_step("list_achievements"):
            return await store.fetch_achievements(session, user_id)
    except PersistenceError:
        raise _server_error("Failed to fetch achievements")
