"""Workload metrics: task completion, hours, efficiency, velocity."""

from __future__ import annotations

from datetime import datetime

from pacer.defaults import VELOCITY_WINDOW_DAYS
from pacer.metrics._time import (
    _safe_avg,
    _since_days,
    days_between,
    non_negative,
    parse_ts,
    percent,
    round_half_up,
)
from pacer.models import Milestone, ProjectSnapshot


def milestone_counts(snapshot: ProjectSnapshot) -> tuple[int, int]:
    """(completed, total) milestones."""
    return (
        sum(1 for m in snapshot.milestones if m.is_completed),
        len(snapshot.milestones),
    )


def task_counts(snapshot: ProjectSnapshot) -> tuple[int, int]:
    """(completed, total) tasks, flattened across milestones."""
    tasks = snapshot.tasks
    return sum(1 for t in tasks if t.is_completed), len(tasks)


def task_completion(snapshot: ProjectSnapshot) -> int:
    completed, total = task_counts(snapshot)
    return percent(completed, total)


# ---------------------------------------------------------------------------
# Hours
# ---------------------------------------------------------------------------

def _milestone_estimate(m: Milestone) -> float:
    own = non_negative(m.estimated_hours)
    if own > 0:
        return own
    return sum(non_negative(t.estimated_hours) for t in m.tasks)


def _milestone_actual(m: Milestone) -> float:
    own = non_negative(m.actual_hours)
    if own > 0:
        return own
    return sum(non_negative(t.actual_hours) for t in m.tasks)


def estimated_hours(snapshot: ProjectSnapshot) -> float:
    """Estimated hours: milestone figure when set, else the sum of its tasks."""
    return sum(_milestone_estimate(m) for m in snapshot.milestones)


def actual_hours(snapshot: ProjectSnapshot) -> float:
    """Logged hours: time entries when any exist, else recorded actual_hours."""
    if snapshot.time_entries:
        return sum(non_negative(e.duration) for e in snapshot.time_entries)
    return sum(_milestone_actual(m) for m in snapshot.milestones)


def efficiency(snapshot: ProjectSnapshot) -> int:
    """Actual over estimated hours as a percentage; above 100 means over budget."""
    estimated = estimated_hours(snapshot)
    if estimated <= 0:
        return 0
    return max(0, round_half_up(100.0 * actual_hours(snapshot) / estimated))


# ---------------------------------------------------------------------------
# Throughput
# ---------------------------------------------------------------------------

def completed_between(
    snapshot: ProjectSnapshot, start: datetime, end: datetime,
) -> int:
    """Completed tasks whose completed_at falls in (start, end]."""
    count = 0
    for t in snapshot.tasks:
        if not t.is_completed:
            continue
        ts = parse_ts(t.completed_at)
        if ts is not None and start < ts <= end:
            count += 1
    return count


def velocity(
    snapshot: ProjectSnapshot,
    now: datetime,
    window_days: int = VELOCITY_WINDOW_DAYS,
) -> float:
    """Tasks completed per day over the trailing window."""
    if window_days <= 0:
        return 0.0
    return completed_between(snapshot, _since_days(now, window_days), now) / window_days


def average_completion_days(snapshot: ProjectSnapshot) -> float:
    """Mean days from creation to completion over completed milestones."""
    durations: list[float] = []
    for m in snapshot.milestones:
        if not m.is_completed:
            continue
        start, end = parse_ts(m.created_at), parse_ts(m.completed_at)
        if start is None or end is None or end < start:
            continue
        durations.append(days_between(start, end))
    return round(_safe_avg(durations), 1)
