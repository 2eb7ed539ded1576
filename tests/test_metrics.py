"""Tests for metric calculators: completion, overdue, hours, velocity, health."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest

from conftest import NOW, iso, make_milestone, make_snapshot, make_task
from pacer import feature_flags
from pacer.metrics import (
    actual_hours,
    average_completion_days,
    client_satisfaction,
    compute_metrics,
    efficiency,
    estimated_hours,
    forecast,
    health_score,
    is_overdue,
    next_deadline,
    overdue_count,
    overdue_counts,
    risk_level,
    task_completion,
    tasks_due_within,
    velocity,
)
from pacer.metrics._time import parse_ts, percent, round_half_up
from pacer.models import RiskLevel
from pacer.observability import generate_metrics


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

class TestTimeHelpers:
    def test_parse_zulu_and_offsets(self):
        assert parse_ts("2024-06-15T12:00:00Z") == NOW
        assert parse_ts("2024-06-15T14:00:00+02:00") == NOW

    def test_parse_date_only_is_midnight_utc(self):
        assert parse_ts("2024-06-15") == NOW - timedelta(hours=12)

    def test_parse_naive_is_utc(self):
        assert parse_ts("2024-06-15T12:00:00") == NOW

    @pytest.mark.parametrize("value", [None, "", "   ", "yesterday", "2024-13-45", 12345, {}])
    def test_unparsable_is_none(self, value):
        assert parse_ts(value) is None

    def test_parse_short_offsets(self):
        assert parse_ts("2024-06-15 12:00:00+00") == NOW
        assert parse_ts("2024-06-15T17:30:00+0530") == NOW
        assert parse_ts("2024-06-15T09:00:00.250-03") == NOW + timedelta(milliseconds=250)

    @pytest.mark.parametrize("value", ["0001-01-01T00:00:00+05:00", "9999-12-31T23:59:59-01:00"])
    def test_out_of_range_after_conversion_is_none(self, value):
        assert parse_ts(value) is None

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1
        assert round_half_up(56.25) == 56

    def test_percent_zero_whole(self):
        assert percent(3, 0) == 0


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

class TestTaskCompletion:
    def test_scenario_a(self, scenario_a):
        assert task_completion(scenario_a) == 50

    def test_no_tasks(self):
        assert task_completion(make_snapshot([make_milestone("m1")])) == 0

    def test_flattens_across_milestones(self):
        snap = make_snapshot([
            make_milestone("m1", tasks=[make_task("t1", status="completed")]),
            make_milestone("m2", tasks=[make_task("t2"), make_task("t3")]),
        ])
        assert task_completion(snap) == 33


# ---------------------------------------------------------------------------
# Overdue
# ---------------------------------------------------------------------------

class TestOverdue:
    def test_scenario_b_task_due_yesterday(self, now):
        snap = make_snapshot([
            make_milestone("m1", "in_progress", [make_task("t1", due_date=iso(days=-1))]),
        ])
        assert overdue_count(snap, now) == 1

    def test_completed_and_cancelled_never_overdue(self, now):
        snap = make_snapshot([
            make_milestone("m1", "completed", due_date=iso(days=-3), tasks=[
                make_task("t1", status="completed", due_date=iso(days=-3)),
                make_task("t2", status="cancelled", due_date=iso(days=-3)),
            ]),
            make_milestone("m2", "cancelled", due_date=iso(days=-3)),
        ])
        assert overdue_count(snap, now) == 0

    def test_malformed_or_missing_dates_never_overdue(self, now):
        snap = make_snapshot([
            make_milestone("m1", due_date="soon", tasks=[
                make_task("t1", due_date="31/02/2024"),
                make_task("t2"),
            ]),
        ])
        assert overdue_count(snap, now) == 0

    def test_strictly_before_now(self, now):
        snap = make_snapshot([make_milestone("m1", due_date=NOW.isoformat())])
        assert not is_overdue(snap.milestones[0], now)

    def test_counts_split_by_kind(self, now):
        snap = make_snapshot([
            make_milestone("m1", due_date=iso(days=-2), tasks=[
                make_task("t1", due_date=iso(days=-1)),
                make_task("t2", due_date=iso(days=-1)),
            ]),
        ])
        assert overdue_counts(snap, now) == (1, 2)


class TestNextDeadline:
    def test_earliest_open_milestone(self):
        snap = make_snapshot([
            make_milestone("m1", "completed", due_date=iso(days=1)),
            make_milestone("m2", due_date=iso(days=9)),
            make_milestone("m3", "in_progress", due_date=iso(days=4)),
        ])
        assert next_deadline(snap) == (iso(days=4), "m3")

    def test_tie_keeps_creation_order(self):
        snap = make_snapshot([
            make_milestone("m2", due_date="2024-07-01"),
            make_milestone("m1", due_date="2024-07-01T00:00:00Z"),
        ])
        assert next_deadline(snap) == ("2024-07-01", "m2")

    def test_none_without_deadlines(self):
        snap = make_snapshot([make_milestone("m1", due_date="tbd"), make_milestone("m2")])
        assert next_deadline(snap) == (None, None)

    def test_none_for_empty_project(self, empty_snapshot):
        assert next_deadline(empty_snapshot) == (None, None)


class TestTasksDueWithin:
    def test_window_excludes_overdue_and_closed(self, now):
        snap = make_snapshot([
            make_milestone("m1", tasks=[
                make_task("late", due_date=iso(days=-1)),
                make_task("soon", due_date=iso(hours=5)),
                make_task("done", status="completed", due_date=iso(hours=5)),
                make_task("later", due_date=iso(days=5)),
                make_task("sooner", due_date=iso(hours=1)),
            ]),
        ])
        due = tasks_due_within(snap, now, timedelta(days=1))
        assert [t.id for t in due] == ["sooner", "soon"]


# ---------------------------------------------------------------------------
# Hours and efficiency
# ---------------------------------------------------------------------------

class TestEfficiency:
    def test_scenario_c_no_time_entries(self):
        snap = make_snapshot([
            make_milestone("m1", estimated_hours=12),
            make_milestone("m2", estimated_hours=8),
        ])
        assert estimated_hours(snap) == 20
        assert efficiency(snap) == 0

    def test_time_entries_drive_actual(self):
        snap = make_snapshot(
            [make_milestone("m1", estimated_hours=10, actual_hours=99,
                            tasks=[make_task("t1")])],
            timeEntries=[
                {"id": "e1", "task_id": "t1", "duration": 4},
                {"id": "e2", "milestone_id": "m1", "duration": 2},
            ],
        )
        assert actual_hours(snap) == 6
        assert efficiency(snap) == 60

    def test_falls_back_to_recorded_actual_hours(self):
        snap = make_snapshot([make_milestone("m1", estimated_hours=10, actual_hours=13)])
        assert efficiency(snap) == 130

    def test_task_hours_used_when_milestone_has_none(self):
        snap = make_snapshot([
            make_milestone("m1", tasks=[
                make_task("t1", estimated_hours=3, actual_hours=4),
                make_task("t2", estimated_hours=5, actual_hours=2),
            ]),
        ])
        assert estimated_hours(snap) == 8
        assert actual_hours(snap) == 6
        assert efficiency(snap) == 75

    def test_negative_hours_ignored(self):
        snap = make_snapshot(
            [make_milestone("m1", estimated_hours=10)],
            timeEntries=[
                {"id": "e1", "milestone_id": "m1", "duration": -5},
                {"id": "e2", "milestone_id": "m1", "duration": 5},
            ],
        )
        assert efficiency(snap) == 50

    def test_zero_estimate(self):
        snap = make_snapshot([make_milestone("m1")],
                             timeEntries=[{"id": "e1", "milestone_id": "m1", "duration": 3}])
        assert efficiency(snap) == 0

    def test_unbounded_above_100(self):
        snap = make_snapshot([make_milestone("m1", estimated_hours=2, actual_hours=9)])
        assert efficiency(snap) == 450


# ---------------------------------------------------------------------------
# Velocity
# ---------------------------------------------------------------------------

class TestVelocity:
    def test_trailing_seven_days(self, now):
        snap = make_snapshot([
            make_milestone("m1", tasks=[
                make_task("t1", status="completed", completed_at=iso(days=-1)),
                make_task("t2", status="completed", completed_at=iso(days=-6)),
                make_task("t3", status="completed", completed_at=iso(days=-8)),
                make_task("t4", status="completed", completed_at=iso(days=2)),
                make_task("t5", status="completed", completed_at="not-a-date"),
                make_task("t6", status="in_progress", completed_at=iso(days=-1)),
            ]),
        ])
        assert velocity(snap, now) == pytest.approx(2 / 7)

    def test_zero_without_completions(self, now, empty_snapshot):
        assert velocity(empty_snapshot, now) == 0.0

    def test_custom_window(self, now):
        snap = make_snapshot([
            make_milestone("m1", tasks=[
                make_task("t1", status="completed", completed_at=iso(days=-1)),
                make_task("t2", status="completed", completed_at=iso(days=-8)),
            ]),
        ])
        assert velocity(snap, now, window_days=10) == pytest.approx(0.2)


class TestAverageCompletionDays:
    def test_mean_over_completed_milestones(self):
        snap = make_snapshot([
            make_milestone("m1", "completed", created_at=iso(days=-10), completed_at=iso(days=-6)),
            make_milestone("m2", "completed", created_at=iso(days=-10), completed_at=iso(days=-4)),
            make_milestone("m3", "completed", created_at=iso(days=-10)),
            make_milestone("m4", "in_progress"),
        ])
        assert average_completion_days(snap) == 5.0

    def test_zero_when_none_completed(self, empty_snapshot):
        assert average_completion_days(empty_snapshot) == 0.0


# ---------------------------------------------------------------------------
# Risk, satisfaction, health
# ---------------------------------------------------------------------------

class TestRiskLevel:
    def test_overdue_dominates(self):
        assert risk_level(overdue=1, efficiency=50, overall_progress=95, total_milestones=3) == RiskLevel.HIGH

    def test_over_budget_is_medium(self):
        assert risk_level(0, 121, 90, 3) == RiskLevel.MEDIUM
        assert risk_level(0, 120, 90, 3) == RiskLevel.LOW

    def test_low_progress_is_medium(self):
        assert risk_level(0, 0, 29, 3) == RiskLevel.MEDIUM
        assert risk_level(0, 0, 30, 3) == RiskLevel.LOW

    def test_empty_project_is_low(self):
        assert risk_level(0, 0, 0, 0) == RiskLevel.LOW


class TestClientSatisfaction:
    def test_scenario_d(self):
        approvals = [{"id": f"a{i}", "status": "approved"} for i in range(7)]
        approvals += [{"id": f"r{i}", "status": "rejected"} for i in range(3)]
        snap = make_snapshot(
            [make_milestone("m1"), make_milestone("m2")],
            approvalsByMilestone={"m1": approvals[:5], "m2": approvals[5:]},
        )
        assert client_satisfaction(snap) == 70

    def test_no_approvals(self, empty_snapshot):
        assert client_satisfaction(empty_snapshot) == 0

    def test_pending_approvals_ignored(self):
        snap = make_snapshot(
            [make_milestone("m1")],
            approvalsByMilestone={"m1": [
                {"id": "a1", "status": "approved"},
                {"id": "a2", "status": "pending"},
            ]},
        )
        assert client_satisfaction(snap) == 100


class TestHealthScore:
    def test_penalties(self):
        # 100 - 15 - 2*5, milestone rate 50% (no adjustment), task rate 50%
        assert health_score(1, 2, 1, 2, 2, 4) == 75

    def test_low_rates_penalized(self):
        assert health_score(0, 0, 0, 4, 1, 10) == 65

    def test_high_rates_rewarded_and_clamped(self):
        assert health_score(0, 0, 5, 5, 10, 10) == 100

    def test_floor_at_zero(self):
        assert health_score(10, 10, 0, 10, 0, 10) == 0

    def test_empty_project(self):
        assert health_score(0, 0, 0, 0, 0, 0) == 100


class TestForecast:
    def test_hours_based_projection(self, now):
        snap = make_snapshot([
            make_milestone("m1", "completed", estimated_hours=20, created_at=iso(days=-10)),
            make_milestone("m2", "in_progress", estimated_hours=20, progress_percentage=50,
                           created_at=iso(days=-5)),
            make_milestone("m3", estimated_hours=10, created_at=iso(days=-1)),
        ])
        f = forecast(snap, now)
        assert f["totalEstimatedHours"] == 50
        assert f["completedHours"] == 30
        assert f["remainingHours"] == 20
        assert f["completionRate"] == 0.6
        assert f["averageDailyHours"] == 3.0
        assert f["estimatedDaysToComplete"] == pytest.approx(6.7)

    def test_defaults_when_nothing_done(self, now):
        snap = make_snapshot([make_milestone("m1", estimated_hours=16)])
        f = forecast(snap, now)
        assert f["averageDailyHours"] == 8.0
        assert f["estimatedDaysToComplete"] == 2.0


# ---------------------------------------------------------------------------
# Combined metrics and degradation
# ---------------------------------------------------------------------------

class TestComputeMetrics:
    def test_scenario_a(self, scenario_a, now):
        m = compute_metrics(scenario_a, now)
        assert m.overall_progress == 56
        assert m.task_completion == 50
        assert (m.completed_milestones, m.total_milestones) == (1, 2)
        assert (m.completed_tasks, m.total_tasks) == (3, 6)
        assert m.risk_level == RiskLevel.LOW
        assert m.strategy == "blended"
        assert m.degraded == []

    def test_empty_snapshot_defaults(self, empty_snapshot, now):
        m = compute_metrics(empty_snapshot, now)
        assert m.overall_progress == 0
        assert m.risk_level == RiskLevel.LOW
        assert m.next_deadline is None
        assert m.efficiency == 0
        assert m.velocity == 0.0

    def test_overdue_forces_high_risk(self, now):
        snap = make_snapshot([
            make_milestone("m1", "completed", estimated_hours=10, actual_hours=5),
            make_milestone("m2", "in_progress", tasks=[make_task("t1", due_date=iso(days=-1))]),
        ])
        m = compute_metrics(snap, now)
        assert m.overdue_items == 1
        assert m.risk_level == RiskLevel.HIGH

    def test_failing_calculator_degrades_alone(self, scenario_a, now, caplog):
        with patch("pacer.metrics.workload.efficiency", side_effect=ZeroDivisionError("boom")):
            m = compute_metrics(scenario_a, now)
        assert m.efficiency == 0
        assert m.degraded == ["efficiency"]
        assert m.overall_progress == 56
        assert "degraded" in caplog.text
        assert 'pacer_degraded_metrics_total{metric="efficiency"} 1' in generate_metrics()

    def test_flags_disable_optional_metrics(self, scenario_a, now):
        feature_flags.set_flag("health_score", enabled=False)
        feature_flags.set_flag("forecast", enabled=False)
        m = compute_metrics(scenario_a, now)
        assert m.health_score is None
        assert m.forecast is None
        assert "healthScore" not in m.to_dict()
