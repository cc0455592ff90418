"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from goaltrack.db import get_session, init_schema
from goaltrack.fitness import store
from goaltrack.fitness.models import FitnessGoal, GoalIn
from goaltrack.main import app

T0 = datetime(2026, 2, 1, tzinfo=timezone.utc)
USER = "user-1"


# ---------------------------------------------------------------------------
# Throwaway SQLite store (no real Postgres needed)
# ---------------------------------------------------------------------------


@pytest.fixture()
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'goaltrack.db'}")
    await init_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def session(session_factory):
    async with session_factory() as s:
        yield s


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture()
def override_session(session_factory):
    """Override the FastAPI dependency so requests hit the SQLite store."""
    async def _override():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _override
    yield session_factory
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-Id": USER},
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def make_goal(
    session: AsyncSession,
    title: str = "Walk 5k",
    category: str = "activity",
    target_value: float = 5000.0,
    start_date: datetime = T0,
    end_date: datetime | None = None,
    user_id: str = USER,
) -> FitnessGoal:
    """Insert and commit an active goal."""
    goal = await store.insert_goal(
        session,
        user_id,
        GoalIn(
            title=title,
            category=category,
            target_value=target_value,
            start_date=start_date,
            end_date=end_date,
        ),
    )
    await session.commit()
    return goal


async def goal_by_id(session: AsyncSession, goal_id: str, user_id: str = USER) -> FitnessGoal:
    goals = {g.id: g for g in await store.fetch_goals(session, user_id)}
    return goals[goal_id]
