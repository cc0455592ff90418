"""
Metric-type → goal-category mapping.

Each entry maps a health_metrics.type value to the fitness_goals.category
it feeds. A metric type missing from the table has no category and never
updates a goal, even when some goal's category string happens to equal the
metric type itself. What happens to such a metric at ingestion time is
decided by settings.goals_unmapped_metric_policy:

  - "ignore": the metric is stored, no goal is touched
  - "error":  the metric is rejected before it is stored

Extend the table here (not at call sites) when a new metric type should
drive goals.
"""

from __future__ import annotations

from dataclasses import dataclass

UNMAPPED_POLICIES = ("ignore", "error")


@dataclass(frozen=True, slots=True)
class CategoryMapping:
    metric_type: str
    category: str
    label: str = ""


METRIC_CATEGORY_MAP: dict[str, CategoryMapping] = {
    "steps": CategoryMapping(metric_type="steps", category="activity", label="Steps"),
    "sleep_minutes": CategoryMapping(metric_type="sleep_minutes", category="sleep", label="Sleep"),
}


def get_category(metric_type: str) -> str | None:
    """Goal category fed by `metric_type`, or None when unmapped."""
    mapping = METRIC_CATEGORY_MAP.get(metric_type)
    return mapping.category if mapping else None


def is_mapped(metric_type: str) -> bool:
    return metric_type in METRIC_CATEGORY_MAP


def list_mappings() -> list[CategoryMapping]:
    return list(METRIC_CATEGORY_MAP.values())
