"""Notification-worthy events derived from successive aggregations.

Delta-based events need the previous state; ``deadline_approaching`` is
derived from the snapshot alone and appears on every call while it holds.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pacer.defaults import (
    DEADLINE_APPROACHING_DAYS,
    PROGRESS_NOTIFY_THRESHOLDS,
    VELOCITY_CHANGE_DELTA,
)
from pacer.metrics._time import parse_ts
from pacer.metrics.schedule import tasks_due_within
from pacer.models import Priority, ProjectSnapshot
from pacer.status_models import Metrics, NotificationEvent, PreviousState

_PROGRESS_TITLES = {
    25: "25% Complete!",
    50: "Halfway There!",
    75: "Almost Done!",
    100: "Project Complete!",
}


def detect_notifications(
    current: Metrics,
    previous: PreviousState | None,
    snapshot: ProjectSnapshot,
    now: datetime,
) -> list[NotificationEvent]:
    out: list[NotificationEvent] = []
    bid = snapshot.booking_id

    if previous is not None:
        since = parse_ts(previous.timestamp)
        if since is not None:
            _milestones_completed(snapshot, since, now, out)
        _overdue_increase(current, previous.metrics, bid, out)
        _progress_crossed(current, previous.metrics, bid, out)
        _velocity_changed(current, previous.metrics, bid, out)

    _deadline_approaching(snapshot, now, out)
    return out


def _milestones_completed(
    snapshot: ProjectSnapshot, since: datetime, now: datetime, out: list[NotificationEvent],
) -> None:
    for m in snapshot.milestones:
        if not m.is_completed:
            continue
        done = parse_ts(m.completed_at)
        if done is not None and since < done <= now:
            out.append(NotificationEvent(
                type="milestone_completed",
                title="Milestone Completed",
                message=f"'{m.title or m.id}' has been completed.",
                priority=Priority.HIGH,
                booking_id=snapshot.booking_id,
                subject_id=m.id,
            ))


def _overdue_increase(
    current: Metrics, prev: Metrics, booking_id: str, out: list[NotificationEvent],
) -> None:
    added = current.overdue_items - prev.overdue_items
    if added <= 0:
        return
    out.append(NotificationEvent(
        type="task_overdue",
        title="Items Overdue",
        message=f"{added} more item(s) became overdue ({current.overdue_items} total).",
        priority=Priority.URGENT,
        booking_id=booking_id,
        data={"overdue": current.overdue_items, "new": added},
    ))


def _progress_crossed(
    current: Metrics, prev: Metrics, booking_id: str, out: list[NotificationEvent],
) -> None:
    for threshold in PROGRESS_NOTIFY_THRESHOLDS:
        if prev.overall_progress < threshold <= current.overall_progress:
            out.append(NotificationEvent(
                type="progress_milestone",
                title=_PROGRESS_TITLES.get(threshold, f"{threshold}% Complete!"),
                message=f"The project reached {threshold}% overall progress.",
                priority=Priority.HIGH if threshold == 100 else Priority.NORMAL,
                booking_id=booking_id,
                data={"threshold": threshold, "progress": current.overall_progress},
            ))


def _velocity_changed(
    current: Metrics, prev: Metrics, booking_id: str, out: list[NotificationEvent],
) -> None:
    change = current.velocity - prev.velocity
    if abs(change) < VELOCITY_CHANGE_DELTA:
        return
    direction = "up" if change > 0 else "down"
    out.append(NotificationEvent(
        type="velocity_change",
        title=f"Velocity {direction.title()}",
        message=f"Velocity went {direction} to {current.velocity:.1f} tasks/day.",
        priority=Priority.LOW if change > 0 else Priority.NORMAL,
        booking_id=booking_id,
        data={"previous": round(prev.velocity, 3), "current": round(current.velocity, 3)},
    ))


def _deadline_approaching(snapshot: ProjectSnapshot, now: datetime, out: list[NotificationEvent]) -> None:
    for t in tasks_due_within(snapshot, now, timedelta(days=DEADLINE_APPROACHING_DAYS)):
        out.append(NotificationEvent(
            type="deadline_approaching",
            title="Deadline Approaching",
            message=f"'{t.title or t.id}' is due {t.due_date}.",
            priority=Priority.HIGH if t.priority in (Priority.HIGH, Priority.URGENT) else Priority.NORMAL,
            booking_id=snapshot.booking_id,
            subject_id=t.id,
            data={"dueDate": t.due_date},
        ))
