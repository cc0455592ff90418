"""Fitness API contract — Pydantic v2 models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class GoalStatus(str, Enum):
    active = "active"
    completed = "completed"


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class MetricIn(BaseModel):
    """Body of POST /fitness/metrics. Type and value are not range-checked."""

    type: str
    value: float
    unit: str | None = None
    recorded_at: datetime | None = None  # Defaults to ingestion time
    source: str | None = None


class GoalIn(BaseModel):
    title: str
    category: str
    target_value: float
    unit: str | None = None
    start_date: datetime | None = None  # Defaults to creation time
    end_date: datetime | None = None


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


class HealthMetric(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: str
    value: float
    unit: str | None = None
    recorded_at: datetime
    source: str | None = None
    created_at: datetime


class FitnessGoal(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    category: str
    target_value: float
    current_value: float = 0.0
    unit: str | None = None
    start_date: datetime
    end_date: datetime | None = None
    status: GoalStatus = GoalStatus.active


class Achievement(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: str | None = None
    points: int = 0
    level: int = 1
    earned_at: datetime


# ---------------------------------------------------------------------------
# Engine + analytics outputs
# ---------------------------------------------------------------------------


class IngestionResult(BaseModel):
    """What one ingestion did: the stored metric plus every goal it touched."""

    metric: HealthMetric
    category: str | None = None
    goals: list[FitnessGoal] = Field(default_factory=list)
    completed_goal_ids: list[str] = Field(default_factory=list)
    achievements: list[Achievement] = Field(default_factory=list)


class TrendPoint(BaseModel):
    date: date
    value: float  # Daily average


class HealthTrend(BaseModel):
    metric_type: str
    days: int
    trend: list[TrendPoint] = Field(default_factory=list)


class ScoreBreakdown(BaseModel):
    total_metrics: int = 0
    active_goals: int = 0
    completed_goals: int = 0  # Active goals already at/over target


class HealthScore(BaseModel):
    score: int
    metrics: ScoreBreakdown = Field(default_factory=ScoreBreakdown)


class Recommendation(BaseModel):
    type: str  # "goal" | "general"
    message: str
    priority: str  # "low" | "medium"


class Recommendations(BaseModel):
    recommendations: list[Recommendation] = Field(default_factory=list)
