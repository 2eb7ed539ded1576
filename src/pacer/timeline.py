"""Timeline synthesis: the entity graph as a flat, chronological event list."""

from __future__ import annotations

from datetime import datetime

from pacer.metrics._time import parse_ts, resolve_now
from pacer.models import ApprovalStatus, ProjectSnapshot, WorkStatus
from pacer.status_models import TimelineEvent

# Tie-break order for events sharing a timestamp
EVENT_PRECEDENCE: dict[str, int] = {
    "milestone_start": 0,
    "task_complete": 1,
    "comment": 2,
    "approval": 3,
    "milestone_complete": 4,
    "deadline": 5,
    "time_entry": 6,
}

_START_STATUS = {
    WorkStatus.COMPLETED: "completed",
    WorkStatus.IN_PROGRESS: "in_progress",
}

_APPROVAL_TITLE = {
    ApprovalStatus.APPROVED: "Granted",
    ApprovalStatus.REJECTED: "Rejected",
    ApprovalStatus.PENDING: "Pending",
}


def build_timeline(
    snapshot: ProjectSnapshot,
    now: datetime | str | None = None,
    include_time_entries: bool = False,
) -> list[TimelineEvent]:
    """Synthesize events and sort by (timestamp, type precedence, entity id).

    Entities without a parseable timestamp produce no event.
    """
    ts_now = resolve_now(now)
    rows: list[tuple[datetime, TimelineEvent]] = []

    def add(when: str | None, event: TimelineEvent) -> None:
        dt = parse_ts(when)
        if dt is None:
            return
        event.timestamp = dt.isoformat()
        rows.append((dt, event))

    for m in snapshot.milestones:
        add(m.created_at, TimelineEvent(
            id=f"milestone-start-{m.id}",
            type="milestone_start",
            timestamp="",
            title=f"{m.title} Started",
            description=f"Work began on {m.title}",
            status=_START_STATUS.get(m.status, "pending"),
            entity_id=m.id,
            milestone_id=m.id,
        ))

        if m.status == WorkStatus.COMPLETED and m.completed_at:
            add(m.completed_at, TimelineEvent(
                id=f"milestone-complete-{m.id}",
                type="milestone_complete",
                timestamp="",
                title=f"{m.title} Completed",
                description=f"Successfully completed {m.title}",
                status="completed",
                entity_id=m.id,
                milestone_id=m.id,
                priority="high",
            ))

        due = parse_ts(m.due_date)
        if due is not None:
            overdue = ts_now > due and m.status != WorkStatus.COMPLETED
            add(m.due_date, TimelineEvent(
                id=f"milestone-deadline-{m.id}",
                type="deadline",
                timestamp="",
                title=f"{m.title} Deadline",
                description=f"Due date for {m.title}",
                status="overdue" if overdue else "pending",
                entity_id=m.id,
                milestone_id=m.id,
                priority="urgent" if overdue else "high",
            ))

        for t in m.tasks:
            if t.status == WorkStatus.COMPLETED and t.completed_at:
                add(t.completed_at, TimelineEvent(
                    id=f"task-complete-{t.id}",
                    type="task_complete",
                    timestamp="",
                    title=f"{t.title} Completed",
                    description=f"Task completed in {m.title}",
                    status="completed",
                    entity_id=t.id,
                    milestone_id=m.id,
                ))

        for a in snapshot.approvals_by_milestone.get(m.id, ()):
            add(a.created_at, TimelineEvent(
                id=f"approval-{a.id}",
                type="approval",
                timestamp="",
                title=f"Approval {_APPROVAL_TITLE[a.status]}",
                description=f"{a.status.value} for {m.title}",
                status=a.status.value,
                entity_id=a.id,
                milestone_id=m.id,
                priority="high",
                actor=a.approved_by or None,
            ))

        for c in snapshot.comments_by_milestone.get(m.id, ()):
            add(c.created_at, TimelineEvent(
                id=f"comment-{c.id}",
                type="comment",
                timestamp="",
                title="New Comment",
                description=f"Comment added to {m.title}",
                status="completed",
                entity_id=c.id,
                milestone_id=m.id,
                priority="low",
                actor=c.author or None,
            ))

    if include_time_entries:
        task_parent = {t.id: t.milestone_id for t in snapshot.tasks}
        for e in snapshot.time_entries:
            add(e.created_at, TimelineEvent(
                id=f"time-entry-{e.id}",
                type="time_entry",
                timestamp="",
                title="Time Logged",
                description=f"{e.duration:g} hours logged",
                status="completed",
                entity_id=e.id,
                milestone_id=e.milestone_id or task_parent.get(e.task_id or "", ""),
                priority="low",
                actor=e.user_id or None,
            ))

    rows.sort(key=lambda row: (row[0], EVENT_PRECEDENCE[row[1].type], row[1].entity_id))
    return [event for _, event in rows]
