"""Metric calculators: pure functions over a ProjectSnapshot.

Modules:
  - progress: overall progress strategies (blended, milestone ratio, weighted)
  - workload: task completion, hours, efficiency, velocity
  - schedule: overdue detection, next deadline, forecast
  - health: risk level, client satisfaction, health score
  - summary: all calculators combined into one Metrics value
"""

from pacer.metrics.health import (
    client_satisfaction,
    health_score,
    risk_level,
)
from pacer.metrics.progress import (
    STRATEGIES,
    BlendedWithTaskCredit,
    MilestoneRatio,
    ProgressStrategy,
    UnknownStrategyError,
    WeightedPercentage,
    get_strategy,
    list_strategies,
    overall_progress,
)
from pacer.metrics.schedule import (
    forecast,
    is_overdue,
    next_deadline,
    overdue_count,
    overdue_counts,
    tasks_due_within,
)
from pacer.metrics.summary import compute_metrics
from pacer.metrics.workload import (
    actual_hours,
    average_completion_days,
    efficiency,
    estimated_hours,
    task_completion,
    velocity,
)

__all__ = [
    "STRATEGIES",
    "BlendedWithTaskCredit",
    "MilestoneRatio",
    "ProgressStrategy",
    "UnknownStrategyError",
    "WeightedPercentage",
    "actual_hours",
    "average_completion_days",
    "client_satisfaction",
    "compute_metrics",
    "efficiency",
    "estimated_hours",
    "forecast",
    "get_strategy",
    "health_score",
    "is_overdue",
    "list_strategies",
    "next_deadline",
    "overall_progress",
    "overdue_count",
    "overdue_counts",
    "risk_level",
    "task_completion",
    "tasks_due_within",
    "velocity",
]
