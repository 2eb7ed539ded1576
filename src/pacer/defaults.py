"""Single source of truth for shared constants and configuration defaults.

Every threshold or default that appears in more than one module is defined
here. Constants that are truly local to one rule stay in that module.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Progress strategies
# ---------------------------------------------------------------------------

DEFAULT_PROGRESS_STRATEGY = "blended"
IN_PROGRESS_CREDIT_CAP = 50          # max % of a milestone's share earned while in progress

# ---------------------------------------------------------------------------
# Time windows
# ---------------------------------------------------------------------------

VELOCITY_WINDOW_DAYS = 7
TIME_TRACKING_GAP_DAYS = 7
DUE_SOON_HOURS = 24                  # insight: task due within a day
DEADLINE_APPROACHING_DAYS = 3        # notification: task due within three days

# ---------------------------------------------------------------------------
# Risk classification
# ---------------------------------------------------------------------------

RISK_EFFICIENCY_MEDIUM = 120         # efficiency above this is over budget
RISK_PROGRESS_MEDIUM = 30            # progress below this is behind

# ---------------------------------------------------------------------------
# Velocity insight thresholds (tasks/day)
# ---------------------------------------------------------------------------

VELOCITY_HIGH = 1.0
VELOCITY_SLOW = 0.5
VELOCITY_CHANGE_DELTA = 0.5

# ---------------------------------------------------------------------------
# Health score
# ---------------------------------------------------------------------------

HEALTH_BASE = 100
HEALTH_OVERDUE_MILESTONE_PENALTY = 15
HEALTH_OVERDUE_TASK_PENALTY = 5
HEALTH_LOW = 60

# ---------------------------------------------------------------------------
# Progress notifications
# ---------------------------------------------------------------------------

PROGRESS_NOTIFY_THRESHOLDS: tuple[int, ...] = (25, 50, 75, 100)

# ---------------------------------------------------------------------------
# Watcher
# ---------------------------------------------------------------------------

WATCH_POLL_INTERVAL_SECONDS = 30
HTTP_TIMEOUT_SECONDS = 10
