"""Tests for insight generation."""

from __future__ import annotations

import pytest

from conftest import NOW, iso, make_milestone, make_snapshot, make_task
from pacer import feature_flags
from pacer.insights import generate_insights, progress_band
from pacer.models import Priority
from pacer.status_models import Metrics, PreviousState


def _ids(insights):
    return [i.id for i in insights]


class TestProgressBand:
    @pytest.mark.parametrize("value,band", [
        (0, "not_started"),
        (1, "getting_started"),
        (24, "getting_started"),
        (25, "in_progress"),
        (49, "in_progress"),
        (50, "almost_there"),
        (74, "almost_there"),
        (75, "nearly_complete"),
        (99, "nearly_complete"),
        (100, "completed"),
    ])
    def test_band_edges(self, value, band):
        assert progress_band(value) == band

    def test_out_of_range_is_clamped(self):
        assert progress_band(-5) == "not_started"
        assert progress_band(150) == "completed"


class TestCoreRules:
    def test_exactly_one_band_insight(self):
        for value in (0, 10, 30, 60, 80, 100):
            bands = [i for i in generate_insights(Metrics(overall_progress=value))
                     if i.type == "progress_band"]
            assert len(bands) == 1

    def test_not_started_suggests_first_milestone(self):
        [band] = generate_insights(Metrics(overall_progress=0))
        assert band.id == "progress_band:not_started"
        assert band.action == "start_first_milestone"
        assert band.priority == Priority.NORMAL

    def test_scenario_b_overdue_is_urgent(self):
        insights = generate_insights(Metrics(overall_progress=40, overdue_items=1))
        overdue = [i for i in insights if i.type == "overdue"]
        assert len(overdue) == 1
        assert overdue[0].priority == Priority.URGENT
        assert "1 item is past due" in overdue[0].message

    def test_high_velocity(self):
        insights = generate_insights(Metrics(overall_progress=40, velocity=1.5))
        assert "velocity:high" in _ids(insights)

    def test_slow_velocity(self):
        insights = generate_insights(Metrics(overall_progress=40, velocity=0.2))
        slow = [i for i in insights if i.id == "velocity:slow"]
        assert slow[0].priority == Priority.NORMAL

    def test_zero_velocity_is_silent(self):
        insights = generate_insights(Metrics(overall_progress=40, velocity=0.0))
        assert not [i for i in insights if i.id.startswith("velocity")]

    def test_velocity_boundaries_are_silent(self):
        assert _ids(generate_insights(Metrics(overall_progress=40, velocity=1.0))) == [
            "progress_band:in_progress",
        ]
        assert _ids(generate_insights(Metrics(overall_progress=40, velocity=0.5))) == [
            "progress_band:in_progress",
        ]

    def test_rule_order(self):
        insights = generate_insights(
            Metrics(overall_progress=60, overdue_items=2, velocity=2.0),
            Metrics(overall_progress=40),
        )
        assert _ids(insights) == [
            "progress_band:almost_there", "overdue", "velocity:high", "progress_delta:up",
        ]


class TestDeltaRules:
    def test_progress_up(self):
        insights = generate_insights(Metrics(overall_progress=56), Metrics(overall_progress=50))
        up = [i for i in insights if i.id == "progress_delta:up"]
        assert "6%" in up[0].message

    def test_regression_is_reported(self):
        insights = generate_insights(Metrics(overall_progress=40), Metrics(overall_progress=55))
        down = [i for i in insights if i.id == "progress_delta:down"]
        assert down[0].priority == Priority.NORMAL
        assert "15%" in down[0].message

    def test_no_change_is_silent(self):
        insights = generate_insights(Metrics(overall_progress=40), Metrics(overall_progress=40))
        assert not [i for i in insights if i.type.startswith("progress_") and i.type != "progress_band"]

    def test_accepts_previous_state(self):
        prev = PreviousState(metrics=Metrics(overall_progress=10), timestamp=iso(days=-1))
        assert "progress_delta:up" in _ids(generate_insights(Metrics(overall_progress=20), prev))

    def test_no_previous_no_delta(self):
        assert _ids(generate_insights(Metrics(overall_progress=20))) == [
            "progress_band:getting_started",
        ]


class TestExtendedRules:
    def test_due_soon(self):
        snap = make_snapshot([
            make_milestone("m1", tasks=[make_task("t1", due_date=iso(hours=6))]),
        ])
        insights = generate_insights(Metrics(), snapshot=snap, now=NOW)
        due = [i for i in insights if i.type == "due_soon"]
        assert due[0].id == "due_soon:t1"
        assert due[0].subject_id == "t1"
        assert due[0].priority == Priority.HIGH

    def test_slow_milestone(self):
        snap = make_snapshot([
            make_milestone("m1", "in_progress",
                           [make_task("t1"), make_task("t2")],
                           created_at=iso(days=-10), due_date=iso(days=10)),
        ], timeEntries=[{"id": "e1", "milestone_id": "m1", "duration": 1, "created_at": iso(days=-1)}])
        insights = generate_insights(Metrics(), snapshot=snap, now=NOW)
        assert _ids(insights) == ["progress_band:not_started", "slow_milestone:m1"]

    def test_on_track_milestone_is_silent(self):
        snap = make_snapshot([
            make_milestone("m1", "in_progress",
                           [make_task("t1", status="completed"), make_task("t2")],
                           created_at=iso(days=-10), due_date=iso(days=10)),
        ], timeEntries=[{"id": "e1", "milestone_id": "m1", "duration": 1, "created_at": iso(days=-1)}])
        insights = generate_insights(Metrics(), snapshot=snap, now=NOW)
        assert "slow_milestone:m1" not in _ids(insights)

    def test_tracking_gap(self, scenario_a):
        insights = generate_insights(Metrics(overall_progress=56), snapshot=scenario_a, now=NOW)
        assert "time_tracking_gap" in _ids(insights)

    def test_recent_time_entry_closes_gap(self):
        snap = make_snapshot(
            [make_milestone("m1", "in_progress")],
            timeEntries=[{"id": "e1", "milestone_id": "m1", "duration": 2, "created_at": iso(days=-2)}],
        )
        assert "time_tracking_gap" not in _ids(generate_insights(Metrics(), snapshot=snap, now=NOW))

    def test_resource_spread(self):
        snap = make_snapshot(
            [make_milestone(f"m{i}", "in_progress") for i in range(4)],
            timeEntries=[{"id": "e1", "milestone_id": "m0", "duration": 1, "created_at": iso(days=-1)}],
        )
        insights = generate_insights(Metrics(), snapshot=snap, now=NOW)
        assert "resource_spread" in _ids(insights)

    def test_low_health(self, empty_snapshot):
        insights = generate_insights(Metrics(health_score=40), snapshot=empty_snapshot, now=NOW)
        assert "low_health" in _ids(insights)

    def test_disabled_by_flag(self, scenario_a):
        feature_flags.set_flag("extended_insights", enabled=False)
        insights = generate_insights(Metrics(overall_progress=56), snapshot=scenario_a, now=NOW)
        assert _ids(insights) == ["progress_band:almost_there"]

    def test_skipped_without_snapshot(self):
        assert _ids(generate_insights(Metrics(health_score=10))) == ["progress_band:not_started"]


class TestStability:
    def test_same_input_same_ids(self, scenario_a):
        m = Metrics(overall_progress=56, velocity=0.3)
        first = generate_insights(m, snapshot=scenario_a, now=NOW)
        second = generate_insights(m, snapshot=scenario_a, now=NOW)
        assert [i.to_dict() for i in first] == [i.to_dict() for i in second]
