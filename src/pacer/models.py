"""Core data types for Pacer: the project snapshot and its entities."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _num(value: Any, default: float = 0.0) -> float:
    """Coerce a JSON number (or numeric string) to a finite float, else *default*."""
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _opt_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key among snake_case / camelCase spellings."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class WorkStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ON_HOLD = "on_hold"

    @classmethod
    def coerce(cls, value: Any) -> WorkStatus:
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.PENDING


# Closed items never count as overdue and never appear in "open" lists
CLOSED_STATUSES = frozenset({WorkStatus.COMPLETED, WorkStatus.CANCELLED})


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def coerce(cls, value: Any) -> Priority:
        raw = str(value).lower()
        if raw == "medium":
            return cls.NORMAL
        try:
            return cls(raw)
        except ValueError:
            return cls.NORMAL


class ApprovalStatus(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    PENDING = "pending"

    @classmethod
    def coerce(cls, value: Any) -> ApprovalStatus:
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.PENDING


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ValidationError(ValueError):
    """Snapshot references a parent entity that does not exist."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid snapshot")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Task:
    id: str
    milestone_id: str
    title: str = ""
    status: WorkStatus = WorkStatus.PENDING
    progress_percentage: float = 0.0
    priority: Priority = Priority.NORMAL
    due_date: str | None = None
    estimated_hours: float = 0.0
    actual_hours: float = 0.0
    completed_at: str | None = None
    created_at: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == WorkStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "milestone_id": self.milestone_id,
            "title": self.title,
            "status": self.status.value,
            "progress_percentage": self.progress_percentage,
            "priority": self.priority.value,
            "due_date": self.due_date,
            "estimated_hours": self.estimated_hours,
            "actual_hours": self.actual_hours,
            "completed_at": self.completed_at,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any], milestone_id: str = "") -> Task:
        return cls(
            id=str(d["id"]),
            milestone_id=str(_pick(d, "milestone_id", "milestoneId", default=milestone_id)),
            title=str(d.get("title", "")),
            status=WorkStatus.coerce(d.get("status", "pending")),
            progress_percentage=_num(_pick(d, "progress_percentage", "progressPercentage")),
            priority=Priority.coerce(d.get("priority", "normal")),
            due_date=_opt_str(_pick(d, "due_date", "dueDate")),
            estimated_hours=_num(_pick(d, "estimated_hours", "estimatedHours")),
            actual_hours=_num(_pick(d, "actual_hours", "actualHours")),
            completed_at=_opt_str(_pick(d, "completed_at", "completedAt")),
            created_at=_opt_str(_pick(d, "created_at", "createdAt")),
        )


@dataclass(frozen=True)
class Milestone:
    id: str
    title: str = ""
    status: WorkStatus = WorkStatus.PENDING
    progress_percentage: float = 0.0
    due_date: str | None = None
    weight: float = 1.0
    estimated_hours: float = 0.0
    actual_hours: float = 0.0
    created_at: str | None = None
    completed_at: str | None = None
    tasks: tuple[Task, ...] = ()

    @property
    def is_completed(self) -> bool:
        return self.status == WorkStatus.COMPLETED

    @property
    def completed_tasks(self) -> int:
        return sum(1 for t in self.tasks if t.is_completed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "progress_percentage": self.progress_percentage,
            "due_date": self.due_date,
            "weight": self.weight,
            "estimated_hours": self.estimated_hours,
            "actual_hours": self.actual_hours,
            "created_at": self.created_at,
            "completed_at": self.completed_at,
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Milestone:
        mid = str(d["id"])
        return cls(
            id=mid,
            title=str(d.get("title", "")),
            status=WorkStatus.coerce(d.get("status", "pending")),
            progress_percentage=_num(_pick(d, "progress_percentage", "progressPercentage")),
            due_date=_opt_str(_pick(d, "due_date", "dueDate")),
            weight=_num(d.get("weight"), 1.0),
            estimated_hours=_num(_pick(d, "estimated_hours", "estimatedHours")),
            actual_hours=_num(_pick(d, "actual_hours", "actualHours")),
            created_at=_opt_str(_pick(d, "created_at", "createdAt")),
            completed_at=_opt_str(_pick(d, "completed_at", "completedAt")),
            tasks=tuple(Task.from_dict(t, milestone_id=mid) for t in d.get("tasks") or []),
        )


@dataclass(frozen=True)
class TimeEntry:
    id: str
    duration: float = 0.0
    task_id: str | None = None
    milestone_id: str | None = None
    created_at: str | None = None
    user_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "duration": self.duration,
            "task_id": self.task_id,
            "milestone_id": self.milestone_id,
            "created_at": self.created_at,
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TimeEntry:
        return cls(
            id=str(d["id"]),
            duration=_num(_pick(d, "duration", "duration_hours", "hours")),
            task_id=_opt_str(_pick(d, "task_id", "taskId")),
            milestone_id=_opt_str(_pick(d, "milestone_id", "milestoneId")),
            created_at=_opt_str(_pick(d, "created_at", "createdAt")),
            user_id=str(_pick(d, "user_id", "userId", default="")),
        )


@dataclass(frozen=True)
class Comment:
    id: str
    milestone_id: str
    author: str = ""
    content: str = ""
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "milestone_id": self.milestone_id,
            "author": self.author,
            "content": self.content,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any], milestone_id: str = "") -> Comment:
        return cls(
            id=str(d["id"]),
            milestone_id=str(_pick(d, "milestone_id", "milestoneId", default=milestone_id)),
            author=str(_pick(d, "author", "created_by", default="")),
            content=str(d.get("content", "")),
            created_at=_opt_str(_pick(d, "created_at", "createdAt")),
        )


@dataclass(frozen=True)
class Approval:
    id: str
    milestone_id: str
    status: ApprovalStatus = ApprovalStatus.PENDING
    notes: str | None = None
    created_at: str | None = None
    approved_by: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "milestone_id": self.milestone_id,
            "status": self.status.value,
            "notes": self.notes,
            "created_at": self.created_at,
            "approved_by": self.approved_by,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any], milestone_id: str = "") -> Approval:
        return cls(
            id=str(d["id"]),
            milestone_id=str(_pick(d, "milestone_id", "milestoneId", default=milestone_id)),
            status=ApprovalStatus.coerce(d.get("status", "pending")),
            notes=_opt_str(d.get("notes")),
            created_at=_opt_str(_pick(d, "created_at", "createdAt")),
            approved_by=str(_pick(d, "approved_by", "approvedBy", default="")),
        )


# ---------------------------------------------------------------------------
# Snapshot (root aggregate view for one booking)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProjectSnapshot:
    """Immutable point-in-time view of every entity for one booking.

    Construction checks referential integrity and raises
    :class:`ValidationError` listing every dangling reference found.
    Nothing else is validated here: malformed dates or hours are left
    for the calculators to degrade.
    """

    booking_id: str
    milestones: tuple[Milestone, ...] = ()
    time_entries: tuple[TimeEntry, ...] = ()
    comments_by_milestone: dict[str, tuple[Comment, ...]] = field(default_factory=dict)
    approvals_by_milestone: dict[str, tuple[Approval, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        errors = _integrity_errors(self)
        if errors:
            raise ValidationError(errors)

    # -- Convenience views --------------------------------------------------

    @property
    def tasks(self) -> list[Task]:
        return [t for m in self.milestones for t in m.tasks]

    @property
    def comments(self) -> list[Comment]:
        return [c for m in self.milestones for c in self.comments_by_milestone.get(m.id, ())]

    @property
    def approvals(self) -> list[Approval]:
        return [a for m in self.milestones for a in self.approvals_by_milestone.get(m.id, ())]

    def milestone(self, milestone_id: str) -> Milestone | None:
        for m in self.milestones:
            if m.id == milestone_id:
                return m
        return None

    def latest_approval(self, milestone_id: str) -> Approval | None:
        """Latest approval for a milestone: max created_at, last wins on ties."""
        from pacer.metrics._time import parse_ts

        latest: Approval | None = None
        latest_ts: datetime | None = None
        for a in self.approvals_by_milestone.get(milestone_id, ()):
            ts = parse_ts(a.created_at)
            if ts is None:
                continue
            if latest_ts is None or ts >= latest_ts:
                latest, latest_ts = a, ts
        return latest

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "bookingId": self.booking_id,
            "milestones": [m.to_dict() for m in self.milestones],
            "timeEntries": [e.to_dict() for e in self.time_entries],
            "commentsByMilestone": {
                k: [c.to_dict() for c in v] for k, v in self.comments_by_milestone.items()
            },
            "approvalsByMilestone": {
                k: [a.to_dict() for a in v] for k, v in self.approvals_by_milestone.items()
            },
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ProjectSnapshot:
        """Build a snapshot from the wire shape.

        Tasks may be nested under ``milestones[].tasks`` or supplied as a
        flat top-level ``tasks`` list; flat tasks are attached to the
        milestone named by their ``milestone_id``.
        """
        milestones = [Milestone.from_dict(m) for m in d.get("milestones") or []]

        flat = [Task.from_dict(t) for t in d.get("tasks") or []]
        if flat:
            known = {m.id for m in milestones}
            by_parent: dict[str, list[Task]] = {}
            for t in flat:
                if t.milestone_id not in known:
                    raise ValidationError([
                        f"task {t.id} references unknown milestone {t.milestone_id!r}"
                    ])
                by_parent.setdefault(t.milestone_id, []).append(t)
            milestones = [
                _with_tasks(m, m.tasks + tuple(by_parent.get(m.id, ())))
                for m in milestones
            ]

        comments_raw = _pick(d, "commentsByMilestone", "comments_by_milestone", default={})
        approvals_raw = _pick(d, "approvalsByMilestone", "approvals_by_milestone", default={})

        return cls(
            booking_id=str(_pick(d, "bookingId", "booking_id", default="")),
            milestones=tuple(milestones),
            time_entries=tuple(
                TimeEntry.from_dict(e)
                for e in _pick(d, "timeEntries", "time_entries", default=[])
            ),
            comments_by_milestone={
                str(mid): tuple(Comment.from_dict(c, milestone_id=str(mid)) for c in items or [])
                for mid, items in comments_raw.items()
            },
            approvals_by_milestone={
                str(mid): tuple(Approval.from_dict(a, milestone_id=str(mid)) for a in items or [])
                for mid, items in approvals_raw.items()
            },
        )


def _with_tasks(m: Milestone, tasks: tuple[Task, ...]) -> Milestone:
    return replace(m, tasks=tasks)


def _integrity_errors(snap: ProjectSnapshot) -> list[str]:
    errors: list[str] = []
    milestone_ids = {m.id for m in snap.milestones}
    task_ids: set[str] = set()

    for m in snap.milestones:
        for t in m.tasks:
            task_ids.add(t.id)
            if t.milestone_id not in milestone_ids:
                errors.append(f"task {t.id} references unknown milestone {t.milestone_id!r}")
            elif t.milestone_id != m.id:
                errors.append(
                    f"task {t.id} is nested under {m.id!r} but references milestone {t.milestone_id!r}"
                )

    for e in snap.time_entries:
        if e.task_id and e.milestone_id:
            errors.append(f"time entry {e.id} references both task and milestone")
        elif e.task_id:
            if e.task_id not in task_ids:
                errors.append(f"time entry {e.id} references unknown task {e.task_id!r}")
        elif e.milestone_id:
            if e.milestone_id not in milestone_ids:
                errors.append(f"time entry {e.id} references unknown milestone {e.milestone_id!r}")
        else:
            errors.append(f"time entry {e.id} references neither a task nor a milestone")

    for label, grouped in (("comments", snap.comments_by_milestone),
                           ("approvals", snap.approvals_by_milestone)):
        for mid in grouped:
            if mid not in milestone_ids:
                errors.append(f"{label} keyed under unknown milestone {mid!r}")

    return errors
