"""Table definitions for metrics, goals and achievements.

health_metrics    append-only measurements, one row per ingestion
fitness_goals     per-user targets; current_value/status owned by the progress engine
achievements      at most one row per (user_id, title), enforced by uq_achievements_user_title
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, Index, Integer, MetaData, String, Table, Text, UniqueConstraint

metadata = MetaData()

health_metrics = Table(
    "health_metrics",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("type", String(64), nullable=False),
    Column("value", Float, nullable=False),
    Column("unit", String(32), nullable=True),
    Column("recorded_at", DateTime(timezone=True), nullable=False),
    Column("source", String(64), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_health_metrics_user_type_recorded", "user_id", "type", "recorded_at"),
)

fitness_goals = Table(
    "fitness_goals",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("title", Text, nullable=False),
    Column("category", String(64), nullable=False),
    Column("target_value", Float, nullable=False),
    Column("current_value", Float, nullable=False, default=0.0),
    Column("unit", String(32), nullable=True),
    Column("start_date", DateTime(timezone=True), nullable=False),
    Column("end_date", DateTime(timezone=True), nullable=True),
    Column("status", String(16), nullable=False, default="active"),  # "active" | "completed"
    Index("ix_fitness_goals_user_status_category", "user_id", "status", "category"),
)

achievements = Table(
    "achievements",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=True),
    Column("points", Integer, nullable=False, default=0),
    Column("level", Integer, nullable=False, default=1),
    Column("earned_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("user_id", "title", name="uq_achievements_user_title"),
)
