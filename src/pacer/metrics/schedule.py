"""Schedule metrics: overdue detection, next deadline, completion forecast."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Union

from pacer.metrics._time import days_between, non_negative, parse_ts, shift
from pacer.models import CLOSED_STATUSES, Milestone, ProjectSnapshot, Task, WorkStatus

# --- Forecast constants ---
_DEFAULT_DAILY_HOURS = 8.0
_DEFAULT_DAYS_TO_COMPLETE = 30.0

WorkItem = Union[Milestone, Task]


def is_overdue(item: WorkItem, now: datetime) -> bool:
    """Open item whose parseable due_date is strictly before *now*."""
    if item.status in CLOSED_STATUSES:
        return False
    due = parse_ts(item.due_date)
    return due is not None and due < now


def overdue_counts(snapshot: ProjectSnapshot, now: datetime) -> tuple[int, int]:
    """(overdue milestones, overdue tasks)."""
    milestones = sum(1 for m in snapshot.milestones if is_overdue(m, now))
    tasks = sum(1 for t in snapshot.tasks if is_overdue(t, now))
    return milestones, tasks


def overdue_count(snapshot: ProjectSnapshot, now: datetime) -> int:
    return sum(overdue_counts(snapshot, now))


def next_deadline(snapshot: ProjectSnapshot) -> tuple[str | None, str | None]:
    """Earliest due_date among non-completed milestones, with its milestone id.

    Ties keep the milestone that comes first in snapshot order.
    """
    best: tuple[datetime, int] | None = None
    best_milestone: Milestone | None = None
    for idx, m in enumerate(snapshot.milestones):
        if m.status == WorkStatus.COMPLETED:
            continue
        due = parse_ts(m.due_date)
        if due is None:
            continue
        if best is None or (due, idx) < best:
            best, best_milestone = (due, idx), m
    if best_milestone is None:
        return None, None
    return best_milestone.due_date, best_milestone.id


def tasks_due_within(
    snapshot: ProjectSnapshot, now: datetime, window: timedelta,
) -> list[Task]:
    """Open tasks due in [now, now + window], earliest first."""
    horizon = shift(now, window)
    due: list[tuple[datetime, str, Task]] = []
    for t in snapshot.tasks:
        if t.status in CLOSED_STATUSES:
            continue
        ts = parse_ts(t.due_date)
        if ts is not None and now <= ts <= horizon:
            due.append((ts, t.id, t))
    due.sort(key=lambda row: (row[0], row[1]))
    return [t for _, _, t in due]


def forecast(snapshot: ProjectSnapshot, now: datetime) -> dict[str, Any]:
    """Hours-based completion forecast.

    Completed milestones contribute their whole estimate, in-progress ones
    their estimate scaled by progress_percentage. The daily burn rate is
    measured from the earliest milestone creation date.
    """
    total = 0.0
    completed = 0.0
    for m in snapshot.milestones:
        est = non_negative(m.estimated_hours)
        total += est
        if m.is_completed:
            completed += est
        elif m.status == WorkStatus.IN_PROGRESS:
            completed += est * min(100.0, non_negative(m.progress_percentage)) / 100.0

    remaining = max(0.0, total - completed)
    completion_rate = completed / total if total > 0 else 0.0

    if completion_rate > 0:
        daily = completed / _days_since_start(snapshot, now)
    else:
        daily = _DEFAULT_DAILY_HOURS
    days_left = remaining / daily if daily > 0 else _DEFAULT_DAYS_TO_COMPLETE
    eta = shift(now, timedelta(days=min(days_left, timedelta.max.days)))

    return {
        "totalEstimatedHours": round(total, 2),
        "completedHours": round(completed, 2),
        "remainingHours": round(remaining, 2),
        "completionRate": round(completion_rate, 3),
        "averageDailyHours": round(daily, 2),
        "estimatedDaysToComplete": round(days_left, 1),
        "estimatedCompletion": eta.isoformat(),
    }


def _days_since_start(snapshot: ProjectSnapshot, now: datetime) -> int:
    starts = [ts for ts in (parse_ts(m.created_at) for m in snapshot.milestones) if ts is not None]
    if not starts:
        return 1
    return max(1, int(days_between(min(starts), now)))
