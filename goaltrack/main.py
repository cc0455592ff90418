from contextlib import asynccontextmanager

from fastapi import FastAPI

from goaltrack.config import configure_logging
from goaltrack.db import init_schema
from goaltrack.fitness.router import router as fitness_router


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    await init_schema()
    yield


app = FastAPI(title="GoalTrack", version="0.1.0", lifespan=lifespan)
app.include_router(fitness_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "fitness": {
            "metrics": "/fitness/metrics",
            "metrics_trend": "/fitness/metrics/trend",
            "score": "/fitness/score",
            "recommendations": "/fitness/recommendations",
            "goals": "/fitness/goals",
            "achievements": "/fitness/achievements",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
