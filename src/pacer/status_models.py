"""Engine output types: Metrics, Insight, TimelineEvent, ProjectStatus.

Read-only output shapes. ``to_dict`` renders the camelCase wire format
consumed by the dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pacer.models import Priority, RiskLevel, _num, _pick


@dataclass
class Metrics:
    overall_progress: int = 0
    completed_milestones: int = 0
    total_milestones: int = 0
    completed_tasks: int = 0
    total_tasks: int = 0
    task_completion: int = 0
    overdue_items: int = 0
    overdue_milestones: int = 0
    overdue_tasks: int = 0
    estimated_hours: float = 0.0
    actual_hours: float = 0.0
    efficiency: int = 0
    velocity: float = 0.0
    risk_level: RiskLevel = RiskLevel.LOW
    client_satisfaction: int = 0
    next_deadline: str | None = None
    next_deadline_milestone_id: str | None = None
    health_score: int | None = None
    average_completion_days: float = 0.0
    forecast: dict[str, Any] | None = None
    strategy: str = ""
    degraded: list[str] = field(default_factory=list)   # metrics that fell back to defaults

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "overallProgress": self.overall_progress,
            "completedMilestones": self.completed_milestones,
            "totalMilestones": self.total_milestones,
            "completedTasks": self.completed_tasks,
            "totalTasks": self.total_tasks,
            "taskCompletion": self.task_completion,
            "overdueItems": self.overdue_items,
            "overdueMilestones": self.overdue_milestones,
            "overdueTasks": self.overdue_tasks,
            "estimatedHours": round(self.estimated_hours, 2),
            "actualHours": round(self.actual_hours, 2),
            "efficiency": self.efficiency,
            "velocity": round(self.velocity, 3),
            "riskLevel": self.risk_level.value,
            "clientSatisfaction": self.client_satisfaction,
            "nextDeadline": self.next_deadline,
            "nextDeadlineMilestoneId": self.next_deadline_milestone_id,
            "averageCompletionDays": self.average_completion_days,
            "progressStrategy": self.strategy,
        }
        if self.health_score is not None:
            d["healthScore"] = self.health_score
        if self.forecast is not None:
            d["forecast"] = self.forecast
        if self.degraded:
            d["degradedMetrics"] = list(self.degraded)
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Metrics:
        """Rebuild from a previously rendered dict (camelCase or snake_case)."""
        def _int(*keys: str) -> int:
            return int(_num(_pick(d, *keys)))

        health = _pick(d, "healthScore", "health_score")
        try:
            risk = RiskLevel(_pick(d, "riskLevel", "risk_level", default="low"))
        except ValueError:
            risk = RiskLevel.LOW
        return cls(
            overall_progress=_int("overallProgress", "overall_progress"),
            completed_milestones=_int("completedMilestones", "completed_milestones"),
            total_milestones=_int("totalMilestones", "total_milestones"),
            completed_tasks=_int("completedTasks", "completed_tasks"),
            total_tasks=_int("totalTasks", "total_tasks"),
            task_completion=_int("taskCompletion", "task_completion"),
            overdue_items=_int("overdueItems", "overdue_items"),
            overdue_milestones=_int("overdueMilestones", "overdue_milestones"),
            overdue_tasks=_int("overdueTasks", "overdue_tasks"),
            estimated_hours=_num(_pick(d, "estimatedHours", "estimated_hours")),
            actual_hours=_num(_pick(d, "actualHours", "actual_hours")),
            efficiency=_int("efficiency"),
            velocity=_num(d.get("velocity")),
            risk_level=risk,
            client_satisfaction=_int("clientSatisfaction", "client_satisfaction"),
            next_deadline=_pick(d, "nextDeadline", "next_deadline"),
            next_deadline_milestone_id=_pick(d, "nextDeadlineMilestoneId", "next_deadline_milestone_id"),
            health_score=int(_num(health)) if health is not None else None,
            average_completion_days=_num(_pick(d, "averageCompletionDays", "average_completion_days")),
            strategy=str(_pick(d, "progressStrategy", "strategy", default="")),
        )


@dataclass
class Insight:
    id: str
    type: str
    title: str
    message: str
    priority: Priority = Priority.NORMAL
    action: str = ""
    subject_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "priority": self.priority.value,
            "action": self.action,
        }
        if self.subject_id is not None:
            d["subjectId"] = self.subject_id
        return d


@dataclass
class TimelineEvent:
    id: str
    type: str
    timestamp: str
    title: str
    description: str
    status: str
    entity_id: str
    milestone_id: str
    priority: str = "normal"
    actor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "entityId": self.entity_id,
            "milestoneId": self.milestone_id,
            "priority": self.priority,
        }
        if self.actor:
            d["actor"] = self.actor
        return d


@dataclass
class NotificationEvent:
    type: str           # milestone_completed | task_overdue | progress_milestone | velocity_change | deadline_approaching
    title: str
    message: str
    priority: Priority = Priority.NORMAL
    booking_id: str = ""
    subject_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "priority": self.priority.value,
            "bookingId": self.booking_id,
            "subjectId": self.subject_id,
            "data": self.data,
        }


@dataclass
class PreviousState:
    """Caller-owned memo of the last aggregation, used only for deltas."""

    metrics: Metrics
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {"metrics": self.metrics.to_dict(), "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> PreviousState:
        return cls(
            metrics=Metrics.from_dict(d.get("metrics") or {}),
            timestamp=str(d.get("timestamp") or ""),
        )


@dataclass
class ProjectStatus:
    booking_id: str
    metrics: Metrics
    generated_at: str                       # the "now" used; the only wall-clock field
    insights: list[Insight] = field(default_factory=list)
    timeline: list[TimelineEvent] | None = None
    progress_delta: int | None = None
    completed_since_previous: int | None = None
    notifications: list[NotificationEvent] = field(default_factory=list)

    def to_previous(self) -> PreviousState:
        return PreviousState(metrics=self.metrics, timestamp=self.generated_at)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"bookingId": self.booking_id}
        d.update(self.metrics.to_dict())
        d["insights"] = [i.to_dict() for i in self.insights]
        if self.timeline is not None:
            d["timeline"] = [e.to_dict() for e in self.timeline]
        if self.progress_delta is not None:
            d["progressDelta"] = self.progress_delta
            d["completedSincePrevious"] = self.completed_since_previous
        d["notifications"] = [n.to_dict() for n in self.notifications]
        d["generatedAt"] = self.generated_at
        return d
