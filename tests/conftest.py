"""Shared fixtures for pacer tests."""

import os
from datetime import datetime, timedelta, timezone

import pytest

from pacer.models import ProjectSnapshot

# Fixed evaluation time so every time-dependent metric is deterministic
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def iso(days: float = 0, hours: float = 0) -> str:
    """ISO timestamp relative to NOW."""
    return (NOW + timedelta(days=days, hours=hours)).isoformat()


# ---------------------------------------------------------------------------
# Auto-use fixtures: cleanup global state between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    """Isolate from PACER_* env vars and any flags.json in the cwd."""
    for key in list(os.environ):
        if key.startswith("PACER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_feature_flags():
    """Reset feature flag global state after every test."""
    yield
    from pacer import feature_flags
    feature_flags._flags.clear()
    feature_flags._loaded = False


@pytest.fixture(autouse=True)
def _reset_metrics():
    yield
    from pacer.observability import reset_metrics
    reset_metrics()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def make_task(id, milestone_id="m1", status="pending", **kw):
    """Task dict in the wire shape."""
    task = {"id": id, "milestone_id": milestone_id, "title": f"Task {id}", "status": status,
            "created_at": iso(days=-20)}
    if status == "completed":
        task.setdefault("completed_at", iso(days=-10))
    task.update(kw)
    return task


def make_milestone(id, status="pending", tasks=(), **kw):
    """Milestone dict in the wire shape; tasks are nested."""
    milestone = {
        "id": id,
        "title": f"Milestone {id}",
        "status": status,
        "progress_percentage": 100 if status == "completed" else 0,
        "created_at": iso(days=-30),
        "tasks": [dict(t, milestone_id=id) for t in tasks],
    }
    milestone.update(kw)
    return milestone


def make_snapshot(milestones=(), booking_id="booking-1", **kw):
    """Build a ProjectSnapshot through the wire-format constructor."""
    payload = {"bookingId": booking_id, "milestones": list(milestones)}
    payload.update(kw)
    return ProjectSnapshot.from_dict(payload)


def scenario_a_payload():
    """Two milestones: first completed (2/2 tasks), second in progress (1/4 tasks)."""
    return {
        "bookingId": "booking-a",
        "milestones": [
            make_milestone("m1", "completed", [
                make_task("t1", status="completed"),
                make_task("t2", status="completed"),
            ], completed_at=iso(days=-5)),
            make_milestone("m2", "in_progress", [
                make_task("t3", status="completed"),
                make_task("t4"),
                make_task("t5", status="in_progress"),
                make_task("t6"),
            ], progress_percentage=25),
        ],
    }


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def scenario_a():
    return ProjectSnapshot.from_dict(scenario_a_payload())


@pytest.fixture
def empty_snapshot():
    return make_snapshot([])
