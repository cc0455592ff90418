"""Endpoint tests — FastAPI app via httpx against a SQLite store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from goaltrack.config import settings
from goaltrack.fitness import store
from goaltrack.fitness.errors import GoalTrackError
from goaltrack.fitness.progress import EngineOptions
from goaltrack.fitness.router import get_engine_options
from goaltrack.main import app
from tests.conftest import T0


def _iso(dt: datetime) -> str:
    return dt.isoformat()


async def _create_goal(client, **overrides) -> dict:
    body = {
        "title": "Walk 5k",
        "category": "activity",
        "target_value": 5000,
        "start_date": _iso(T0),
    }
    body.update(overrides)
    resp = await client.post("/fitness/goals", json=body)
    assert resp.status_code == 201
    return resp.json()


class TestLogMetric:
    @pytest.mark.asyncio
    async def test_returns_persisted_metric(self, client):
        resp = await client.post(
            "/fitness/metrics",
            json={"type": "steps", "value": 3000, "unit": "steps", "recorded_at": _iso(T0), "source": "phone"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["id"]
        assert body["user_id"] == "user-1"
        assert body["type"] == "steps"
        assert body["value"] == 3000.0
        assert body["source"] == "phone"

    @pytest.mark.asyncio
    async def test_missing_user_header_401(self, client):
        resp = await client.post(
            "/fitness/metrics",
            json={"type": "steps", "value": 1},
            headers={"X-User-Id": ""},
        )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_body_422(self, client):
        resp = await client.post("/fitness/metrics", json={"type": "steps", "value": "many"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_unmapped_type_accepted_by_default(self, client):
        resp = await client.post("/fitness/metrics", json={"type": "water_intake", "value": 250, "unit": "mL"})
        assert resp.status_code == 201

    @pytest.mark.asyncio
    async def test_unmapped_type_rejected_under_error_policy(self, client):
        app.dependency_overrides[get_engine_options] = lambda: EngineOptions(unmapped_policy="error")
        resp = await client.post("/fitness/metrics", json={"type": "water_intake", "value": 250})
        assert resp.status_code == 422
        assert "water_intake" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_store_failure_is_generic_500(self, client, monkeypatch):
        async def _boom(*args, **kwargs):
            raise OperationalError("INSERT INTO health_metrics", {}, Exception("db down"))

        monkeypatch.setattr(store, "insert_metric", _boom)
        resp = await client.post("/fitness/metrics", json={"type": "steps", "value": 1})
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Failed to log metric"}

    @pytest.mark.asyncio
    async def test_unsupported_store_dialect_is_generic_500(self, client, monkeypatch):
        async def _unsupported(*args, **kwargs):
            raise GoalTrackError("Conditional insert not supported on dialect 'mysql'")

        monkeypatch.setattr(store, "insert_achievement_if_absent", _unsupported)
        await _create_goal(client, target_value=10)
        resp = await client.post(
            "/fitness/metrics",
            json={"type": "steps", "value": 20, "recorded_at": _iso(T0 + timedelta(hours=1))},
        )
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Failed to log metric"}


class TestGoalFlow:
    @pytest.mark.asyncio
    async def test_goal_completes_and_achievement_listed(self, client):
        goal = await _create_goal(client)
        assert goal["status"] == "active"
        assert goal["current_value"] == 0.0

        for value, hours in ((3000, 1), (4000, 2)):
            resp = await client.post(
                "/fitness/metrics",
                json={"type": "steps", "value": value, "unit": "steps", "recorded_at": _iso(T0 + timedelta(hours=hours))},
            )
            assert resp.status_code == 201

        goals = (await client.get("/fitness/goals")).json()
        assert len(goals) == 1
        assert goals[0]["current_value"] == 7000.0
        assert goals[0]["status"] == "completed"

        achievements = (await client.get("/fitness/achievements")).json()
        assert [a["title"] for a in achievements] == ["Winner: Walk 5k"]

    @pytest.mark.asyncio
    async def test_goals_newest_start_first(self, client):
        await _create_goal(client, title="Old", start_date=_iso(T0))
        await _create_goal(client, title="New", start_date=_iso(T0 + timedelta(days=5)))
        titles = [g["title"] for g in (await client.get("/fitness/goals")).json()]
        assert titles == ["New", "Old"]

    @pytest.mark.asyncio
    async def test_goals_scoped_to_user(self, client):
        await _create_goal(client)
        resp = await client.get("/fitness/goals", headers={"X-User-Id": "someone-else"})
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_create_goal_requires_target(self, client):
        resp = await client.post("/fitness/goals", json={"title": "x", "category": "activity"})
        assert resp.status_code == 422


class TestReadEndpoints:
    @pytest.mark.asyncio
    async def test_metrics_window_and_type_filter(self, client):
        now = datetime.now(timezone.utc)
        for metric_type, value, age in (("steps", 100, 1), ("steps", 200, 20), ("sleep_minutes", 420, 2)):
            await client.post(
                "/fitness/metrics",
                json={"type": metric_type, "value": value, "recorded_at": _iso(now - timedelta(days=age))},
            )

        recent_steps = (await client.get("/fitness/metrics", params={"type": "steps"})).json()
        assert [m["value"] for m in recent_steps] == [100.0]

        everything = (await client.get("/fitness/metrics", params={"days": 30})).json()
        assert [m["value"] for m in everything] == [200.0, 420.0, 100.0]

    @pytest.mark.asyncio
    async def test_trend(self, client):
        day = datetime.now(timezone.utc).replace(hour=6, minute=0, second=0, microsecond=0) - timedelta(days=2)
        for value, hours in ((1000, 0), (3000, 4)):
            await client.post(
                "/fitness/metrics",
                json={"type": "steps", "value": value, "recorded_at": _iso(day + timedelta(hours=hours))},
            )

        resp = await client.get("/fitness/metrics/trend", params={"metric_type": "steps", "days": 7})
        assert resp.status_code == 200
        body = resp.json()
        assert body["metric_type"] == "steps"
        assert body["days"] == 7
        assert body["trend"] == [{"date": day.date().isoformat(), "value": 2000.0}]

    @pytest.mark.asyncio
    async def test_score(self, client):
        await _create_goal(client, target_value=100, start_date=_iso(datetime.now(timezone.utc) - timedelta(days=1)))
        await client.post("/fitness/metrics", json={"type": "steps", "value": 50})

        body = (await client.get("/fitness/score")).json()
        assert body["score"] == 60
        assert body["metrics"] == {"total_metrics": 1, "active_goals": 1, "completed_goals": 0}

    @pytest.mark.asyncio
    async def test_recommendations_default_tips(self, client):
        body = (await client.get("/fitness/recommendations")).json()
        assert [r["type"] for r in body["recommendations"]] == ["general", "general"]

    @pytest.mark.asyncio
    async def test_recommendations_for_lagging_goal(self, client):
        await _create_goal(client, title="Walk 5k", target_value=5000)
        await client.post(
            "/fitness/metrics",
            json={"type": "steps", "value": 1000, "recorded_at": _iso(T0 + timedelta(hours=1))},
        )

        body = (await client.get("/fitness/recommendations")).json()
        assert body == {
            "recommendations": [
                {"type": "goal", "message": "You're 20% towards \"Walk 5k\". Keep going!", "priority": "medium"}
            ]
        }


class TestApiKey:
    @pytest.mark.asyncio
    async def test_key_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_key", "secret")
        resp = await client.get("/fitness/goals")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_bearer_key_accepted(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_key", "secret")
        resp = await client.get("/fitness/goals", headers={"Authorization": "Bearer secret"})
        assert resp.status_code == 200


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_root_lists_fitness_routes(self, client):
        body = (await client.get("/")).json()
        assert body["fitness"]["goals"] == "/fitness/goals"
