"""Exceptions raised by the fitness store and progress engine."""

from __future__ import annotations


class GoalTrackError(Exception):
    """Base class for fitness-domain failures."""


class PersistenceError(GoalTrackError):
    """A store operation failed; the ingestion was aborted at `step`."""

    def __init__(self, step: str, message: str = "") -> None:
        self.step = step
        super().__init__(f"{step} failed" + (f": {message}" if message else ""))


class UnmappedMetricType(GoalTrackError):
    """Metric type has no goal category and the policy rejects it."""

    def __init__(self, metric_type: str) -> None:
        self.metric_type = metric_type
        super().__init__(f"No goal category for metric type '{metric_type}'")
