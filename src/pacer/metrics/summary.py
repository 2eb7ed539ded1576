"""Assemble every calculator into one Metrics value.

Each calculator runs on its own. A calculator that fails on malformed
data is logged and replaced by its documented default; the rest of the
metrics are still computed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, TypeVar

from pacer import feature_flags
from pacer.defaults import VELOCITY_WINDOW_DAYS
from pacer.metrics import health, schedule, workload
from pacer.metrics.progress import ProgressStrategy, get_strategy
from pacer.models import ProjectSnapshot, RiskLevel
from pacer.observability import record_degraded
from pacer.status_models import Metrics

log = logging.getLogger("pacer.metrics")

T = TypeVar("T")


def _guarded(
    name: str,
    fn: Callable[[], T],
    default: T,
    degraded: list[str],
    booking_id: str,
) -> T:
    try:
        return fn()
    except Exception:
        log.warning(
            "Metric %s degraded to default for booking %s", name, booking_id,
            exc_info=True, extra={"booking_id": booking_id},
        )
        degraded.append(name)
        record_degraded(name)
        return default


def compute_metrics(
    snapshot: ProjectSnapshot,
    now: datetime,
    strategy: ProgressStrategy | None = None,
    velocity_window_days: int = VELOCITY_WINDOW_DAYS,
) -> Metrics:
    strategy = strategy or get_strategy()
    degraded: list[str] = []
    bid = snapshot.booking_id

    def g(name: str, fn: Callable[[], Any], default: Any) -> Any:
        return _guarded(name, fn, default, degraded, bid)

    completed_m, total_m = g("milestone_counts", lambda: workload.milestone_counts(snapshot), (0, 0))
    completed_t, total_t = g("task_counts", lambda: workload.task_counts(snapshot), (0, 0))
    progress = g("overall_progress", lambda: strategy.overall_progress(snapshot), 0)
    overdue_m, overdue_t = g("overdue", lambda: schedule.overdue_counts(snapshot, now), (0, 0))
    eff = g("efficiency", lambda: workload.efficiency(snapshot), 0)
    deadline, deadline_mid = g("next_deadline", lambda: schedule.next_deadline(snapshot), (None, None))

    metrics = Metrics(
        overall_progress=progress,
        completed_milestones=completed_m,
        total_milestones=total_m,
        completed_tasks=completed_t,
        total_tasks=total_t,
        task_completion=g("task_completion", lambda: workload.task_completion(snapshot), 0),
        overdue_items=overdue_m + overdue_t,
        overdue_milestones=overdue_m,
        overdue_tasks=overdue_t,
        estimated_hours=g("estimated_hours", lambda: workload.estimated_hours(snapshot), 0.0),
        actual_hours=g("actual_hours", lambda: workload.actual_hours(snapshot), 0.0),
        efficiency=eff,
        velocity=g("velocity", lambda: workload.velocity(snapshot, now, velocity_window_days), 0.0),
        risk_level=g(
            "risk_level",
            lambda: health.risk_level(overdue_m + overdue_t, eff, progress, total_m),
            RiskLevel.LOW,
        ),
        client_satisfaction=g("client_satisfaction", lambda: health.client_satisfaction(snapshot), 0),
        next_deadline=deadline,
        next_deadline_milestone_id=deadline_mid,
        average_completion_days=g(
            "average_completion_days", lambda: workload.average_completion_days(snapshot), 0.0,
        ),
        strategy=getattr(strategy, "name", type(strategy).__name__),
    )

    if feature_flags.is_enabled("health_score"):
        metrics.health_score = g(
            "health_score",
            lambda: health.health_score(overdue_m, overdue_t, completed_m, total_m, completed_t, total_t),
            0,
        )
    if feature_flags.is_enabled("forecast"):
        metrics.forecast = g("forecast", lambda: schedule.forecast(snapshot, now), None)

    metrics.degraded = degraded
    return metrics
