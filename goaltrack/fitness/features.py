"""Pure stateless feature functions — math only, never touches the store."""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone

from goaltrack.fitness.models import FitnessGoal, GoalStatus, HealthScore, Recommendation, ScoreBreakdown, TrendPoint

SCORE_BASE = 50
SCORE_ACTIVITY_BONUS = 10
SCORE_PER_GOAL_AT_TARGET = 10
SCORE_CAP = 100

LAGGING_PROGRESS_PCT = 50.0

DEFAULT_TIPS = (
    Recommendation(type="general", message="Drink 8 glasses of water today", priority="low"),
    Recommendation(type="general", message="Aim for 7-8 hours of sleep tonight", priority="medium"),
)


def as_utc(dt: datetime) -> datetime:
    """Aware UTC datetime. Naive input is taken to already be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def window_start(days: int, now: datetime | None = None) -> datetime:
    """Start of a trailing `days`-day window ending at `now`."""
    return as_utc(now or datetime.now(timezone.utc)) - timedelta(days=days)


def is_target_met(current_value: float, target_value: float) -> bool:
    return current_value >= target_value


def next_status(current_value: float, target_value: float) -> GoalStatus:
    """Completed once the aggregate reaches the target, active otherwise."""
    if is_target_met(current_value, target_value):
        return GoalStatus.completed
    return GoalStatus.active


def achievement_title(goal_title: str) -> str:
    return f"Winner: {goal_title}"


def achievement_description(goal_title: str) -> str:
    return f"You reached your goal: {goal_title}!"


def daily_trend(points: list[tuple[datetime, float]]) -> list[TrendPoint]:
    """Group (recorded_at, value) pairs by UTC calendar day and average each day.

    Days come back in first-seen order, which is chronological when the
    input is sorted by recorded_at.
    """
    buckets: dict[date, list[float]] = {}
    for recorded_at, value in points:
        buckets.setdefault(as_utc(recorded_at).date(), []).append(value)
    return [TrendPoint(date=day, value=sum(vals) / len(vals)) for day, vals in buckets.items()]


def health_score(metric_count: int, active_goals: list[FitnessGoal]) -> HealthScore:
    """Base score plus bonuses for recent logging and active goals already at target."""
    at_target = [g for g in active_goals if is_target_met(g.current_value, g.target_value)]

    score = SCORE_BASE
    if metric_count > 0:
        score += SCORE_ACTIVITY_BONUS
    score += len(at_target) * SCORE_PER_GOAL_AT_TARGET

    return HealthScore(
        score=min(score, SCORE_CAP),
        metrics=ScoreBreakdown(
            total_metrics=metric_count,
            active_goals=len(active_goals),
            completed_goals=len(at_target),
        ),
    )


def progress_pct(current_value: float, target_value: float) -> float | None:
    """Percent of target reached. None for a zero target."""
    if target_value == 0:
        return None
    return current_value / target_value * 100.0


def recommendations(active_goals: list[FitnessGoal]) -> list[Recommendation]:
    """One nudge per active goal under half way, else the default general tips."""
    result: list[Recommendation] = []
    for goal in active_goals:
        pct = progress_pct(goal.current_value, goal.target_value)
        if pct is None or pct >= LAGGING_PROGRESS_PCT:
            continue
        # Round half up
        shown = math.floor(pct + 0.5)
        result.append(
            Recommendation(
                type="goal",
                message=f'You\'re {shown}% towards "{goal.title}". Keep going!',
                priority="medium",
            )
        )
    if not result:
        result = [tip.model_copy() for tip in DEFAULT_TIPS]
    return result
