"""Insight generation: human-readable observations with a suggested action.

Every rule is evaluated on each call and may emit zero or more insights.
Nothing is suppressed here; a caller that lets users dismiss insights
keeps its own set of dismissed ids (ids are stable across calls).
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pacer import feature_flags
from pacer.defaults import (
    DUE_SOON_HOURS,
    HEALTH_LOW,
    TIME_TRACKING_GAP_DAYS,
    VELOCITY_HIGH,
    VELOCITY_SLOW,
)
from pacer.metrics._time import clamp_pct, days_between, parse_ts, resolve_now, shift
from pacer.metrics.schedule import tasks_due_within
from pacer.models import Priority, ProjectSnapshot, WorkStatus
from pacer.status_models import Insight, Metrics, PreviousState

# --- Extended rule thresholds ---
_SLOW_MILESTONE_GAP = 20          # points behind time-based expected progress
_RESOURCE_SPREAD_MAX = 3          # in-progress milestones before spread is flagged

# (upper bound exclusive, key, title, message, priority, action)
_BANDS: list[tuple[int, str, str, str, Priority, str]] = [
    (1, "not_started", "Not Started",
     "No milestone has been completed yet. Kick off the first milestone to get the project moving.",
     Priority.NORMAL, "start_first_milestone"),
    (25, "getting_started", "Getting Started",
     "Work is underway. Keep the first milestones moving to build momentum.",
     Priority.LOW, "review_next_tasks"),
    (50, "in_progress", "In Progress",
     "The project is progressing. Keep tasks flowing and log time as you go.",
     Priority.LOW, "keep_momentum"),
    (75, "almost_there", "Almost There",
     "More than half of the work is done. Plan the remaining milestones.",
     Priority.LOW, "plan_remaining_work"),
    (100, "nearly_complete", "Nearly Complete",
     "The project is close to done. Prepare deliverables for final review.",
     Priority.NORMAL, "prepare_final_review"),
    (101, "completed", "Completed",
     "All milestones are complete. Request final approval from the client.",
     Priority.LOW, "request_final_approval"),
]


def progress_band(overall_progress: int) -> str:
    """Band key for a progress value: [0], (0,25), [25,50), [50,75), [75,100), [100]."""
    value = clamp_pct(overall_progress)
    for upper, key, *_ in _BANDS:
        if value < upper:
            return key
    return _BANDS[-1][1]


def generate_insights(
    current: Metrics,
    previous: Metrics | PreviousState | None = None,
    snapshot: ProjectSnapshot | None = None,
    now: datetime | str | None = None,
) -> list[Insight]:
    """Turn current metrics (and optional deltas) into insights, in rule order."""
    prev = previous.metrics if isinstance(previous, PreviousState) else previous
    out: list[Insight] = []

    _band_insight(current, out)
    _overdue_insight(current, out)
    _velocity_insight(current, out)
    if prev is not None:
        _delta_insight(current, prev, out)

    if snapshot is not None and feature_flags.is_enabled("extended_insights"):
        ts = resolve_now(now)
        _detect_due_soon(snapshot, ts, out)
        _detect_slow_milestones(snapshot, ts, out)
        _detect_tracking_gap(snapshot, ts, out)
        _detect_resource_spread(snapshot, out)
        _detect_low_health(current, out)

    return out


# ---------------------------------------------------------------------------
# Core rules
# ---------------------------------------------------------------------------

def _band_insight(current: Metrics, out: list[Insight]) -> None:
    key = progress_band(current.overall_progress)
    for _, band_key, title, message, priority, action in _BANDS:
        if band_key == key:
            out.append(Insight(
                id=f"progress_band:{key}",
                type="progress_band",
                title=title,
                message=f"{current.overall_progress}% complete. {message}",
                priority=priority,
                action=action,
                subject_id=key,
            ))
            return


def _overdue_insight(current: Metrics, out: list[Insight]) -> None:
    n = current.overdue_items
    if n <= 0:
        return
    noun = "item is" if n == 1 else "items are"
    out.append(Insight(
        id="overdue",
        type="overdue",
        title="Overdue Items",
        message=f"{n} {noun} past due. Review deadlines and reprioritize.",
        priority=Priority.URGENT,
        action="review_overdue",
    ))


def _velocity_insight(current: Metrics, out: list[Insight]) -> None:
    v = current.velocity
    if v > VELOCITY_HIGH:
        out.append(Insight(
            id="velocity:high",
            type="high_velocity",
            title="High Velocity",
            message=f"The team is completing {v:.1f} tasks per day. Great pace!",
            priority=Priority.LOW,
            action="keep_momentum",
        ))
    elif 0 < v < VELOCITY_SLOW:
        out.append(Insight(
            id="velocity:slow",
            type="slow_progress",
            title="Slow Progress",
            message=f"Only {v:.2f} tasks per day completed recently. Check for blockers.",
            priority=Priority.NORMAL,
            action="identify_blockers",
        ))


def _delta_insight(current: Metrics, prev: Metrics, out: list[Insight]) -> None:
    delta = current.overall_progress - prev.overall_progress
    if delta > 0:
        out.append(Insight(
            id="progress_delta:up",
            type="progress_up",
            title="Progress Made",
            message=f"Overall progress rose by {delta}% since the last update.",
            priority=Priority.LOW,
            action="view_recent_activity",
        ))
    elif delta < 0:
        out.append(Insight(
            id="progress_delta:down",
            type="progress_regressed",
            title="Progress Regressed",
            message=f"Overall progress dropped by {-delta}% since the last update.",
            priority=Priority.NORMAL,
            action="view_recent_activity",
        ))


# ---------------------------------------------------------------------------
# Extended rules (snapshot-level)
# ---------------------------------------------------------------------------

def _detect_due_soon(snapshot: ProjectSnapshot, now: datetime, out: list[Insight]) -> None:
    """Signal: open task due within the next day."""
    for t in tasks_due_within(snapshot, now, timedelta(hours=DUE_SOON_HOURS)):
        out.append(Insight(
            id=f"due_soon:{t.id}",
            type="due_soon",
            title="Task Due Soon",
            message=f"'{t.title or t.id}' is due within {DUE_SOON_HOURS} hours.",
            priority=Priority.HIGH,
            action="focus_task",
            subject_id=t.id,
        ))


def _detect_slow_milestones(snapshot: ProjectSnapshot, now: datetime, out: list[Insight]) -> None:
    """Signal: in-progress milestone well behind its time-based expected progress."""
    for m in snapshot.milestones:
        if m.status != WorkStatus.IN_PROGRESS:
            continue
        start, due = parse_ts(m.created_at), parse_ts(m.due_date)
        if start is None or due is None or due <= start:
            continue
        expected = clamp_pct(100.0 * days_between(start, now) / days_between(start, due))
        if m.tasks:
            actual = 100.0 * m.completed_tasks / len(m.tasks)
        else:
            actual = float(clamp_pct(m.progress_percentage))
        if actual < expected - _SLOW_MILESTONE_GAP:
            out.append(Insight(
                id=f"slow_milestone:{m.id}",
                type="slow_milestone",
                title="Milestone Behind Schedule",
                message=(
                    f"'{m.title or m.id}' is {actual:.0f}% done but about "
                    f"{expected}% of its time has elapsed."
                ),
                priority=Priority.HIGH,
                action="review_milestone_plan",
                subject_id=m.id,
            ))


def _detect_tracking_gap(snapshot: ProjectSnapshot, now: datetime, out: list[Insight]) -> None:
    """Signal: work is in progress but nobody logged time recently."""
    if not any(m.status == WorkStatus.IN_PROGRESS for m in snapshot.milestones):
        return
    cutoff = shift(now, -timedelta(days=TIME_TRACKING_GAP_DAYS))
    for e in snapshot.time_entries:
        ts = parse_ts(e.created_at)
        if ts is not None and cutoff < ts <= now:
            return
    out.append(Insight(
        id="time_tracking_gap",
        type="time_tracking_gap",
        title="No Time Logged Recently",
        message=f"No time has been logged in the last {TIME_TRACKING_GAP_DAYS} days while work is in progress.",
        priority=Priority.LOW,
        action="log_time",
    ))


def _detect_resource_spread(snapshot: ProjectSnapshot, out: list[Insight]) -> None:
    """Signal: too many milestones open at the same time."""
    active = sum(1 for m in snapshot.milestones if m.status == WorkStatus.IN_PROGRESS)
    if active > _RESOURCE_SPREAD_MAX:
        out.append(Insight(
            id="resource_spread",
            type="resource_spread",
            title="Resource Spread",
            message=f"{active} milestones are in progress at once. Focus on fewer for better throughput.",
            priority=Priority.NORMAL,
            action="focus_milestones",
        ))


def _detect_low_health(current: Metrics, out: list[Insight]) -> None:
    if current.health_score is None or current.health_score >= HEALTH_LOW:
        return
    out.append(Insight(
        id="low_health",
        type="low_health",
        title="Project Health Low",
        message=f"Health score is {current.health_score}. Finish in-progress items and clear bottlenecks.",
        priority=Priority.HIGH,
        action="reduce_bottlenecks",
    ))
