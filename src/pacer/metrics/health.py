"""Project health signals: risk level, client satisfaction, health score."""

from __future__ import annotations

from pacer.defaults import (
    HEALTH_BASE,
    HEALTH_OVERDUE_MILESTONE_PENALTY,
    HEALTH_OVERDUE_TASK_PENALTY,
    RISK_EFFICIENCY_MEDIUM,
    RISK_PROGRESS_MEDIUM,
)
from pacer.metrics._time import clamp_pct, percent
from pacer.models import ApprovalStatus, ProjectSnapshot, RiskLevel

# --- Health score rate adjustments (rate thresholds in %) ---
_MILESTONE_RATE_LOW = 50
_MILESTONE_RATE_LOW_PENALTY = 20
_TASK_RATE_LOW = 30
_TASK_RATE_LOW_PENALTY = 15
_MILESTONE_RATE_HIGH = 80
_TASK_RATE_HIGH = 70
_RATE_HIGH_BONUS = 10


def risk_level(
    overdue: int,
    efficiency: int,
    overall_progress: int,
    total_milestones: int,
) -> RiskLevel:
    """Classify risk. Overdue work always dominates.

    The low-progress rule needs at least one milestone: an empty project
    has nothing to be behind on.
    """
    if overdue > 0:
        return RiskLevel.HIGH
    if efficiency > RISK_EFFICIENCY_MEDIUM:
        return RiskLevel.MEDIUM
    if total_milestones > 0 and overall_progress < RISK_PROGRESS_MEDIUM:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def approval_counts(snapshot: ProjectSnapshot) -> tuple[int, int]:
    """(approved, rejected) across every milestone."""
    approved = rejected = 0
    for a in snapshot.approvals:
        if a.status == ApprovalStatus.APPROVED:
            approved += 1
        elif a.status == ApprovalStatus.REJECTED:
            rejected += 1
    return approved, rejected


def client_satisfaction(snapshot: ProjectSnapshot) -> int:
    approved, rejected = approval_counts(snapshot)
    return percent(approved, approved + rejected)


def health_score(
    overdue_milestones: int,
    overdue_tasks: int,
    completed_milestones: int,
    total_milestones: int,
    completed_tasks: int,
    total_tasks: int,
) -> int:
    score = (
        HEALTH_BASE
        - HEALTH_OVERDUE_MILESTONE_PENALTY * overdue_milestones
        - HEALTH_OVERDUE_TASK_PENALTY * overdue_tasks
    )

    if total_milestones > 0:
        rate = 100.0 * completed_milestones / total_milestones
        if rate < _MILESTONE_RATE_LOW:
            score -= _MILESTONE_RATE_LOW_PENALTY
        elif rate > _MILESTONE_RATE_HIGH:
            score += _RATE_HIGH_BONUS

    if total_tasks > 0:
        rate = 100.0 * completed_tasks / total_tasks
        if rate < _TASK_RATE_LOW:
            score -= _TASK_RATE_LOW_PENALTY
        elif rate > _TASK_RATE_HIGH:
            score += _RATE_HIGH_BONUS

    return clamp_pct(score)
