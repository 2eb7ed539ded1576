"""Engine runtime configuration from environment.

Configuration (env vars):
    PACER_PROGRESS_STRATEGY: blended | milestone_ratio | weighted (default blended)
    PACER_VELOCITY_WINDOW_DAYS: trailing window for velocity (default 7)
    PACER_INCLUDE_TIMELINE: "1" to attach the timeline by default (default "0")
    PACER_LOG_LEVEL: root log level for CLI/server (default INFO)
"""

from __future__ import annotations

import logging
import os

from pacer.defaults import DEFAULT_PROGRESS_STRATEGY, VELOCITY_WINDOW_DAYS

log = logging.getLogger("pacer.config")


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("Ignoring non-integer %s=%r, using %d", key, raw, default)
        return default


class EngineConfig:
    """Aggregation defaults read once per instance from the environment."""

    def __init__(self) -> None:
        self.progress_strategy = os.environ.get(
            "PACER_PROGRESS_STRATEGY", DEFAULT_PROGRESS_STRATEGY,
        ).strip().lower()
        self.velocity_window_days = max(1, _env_int("PACER_VELOCITY_WINDOW_DAYS", VELOCITY_WINDOW_DAYS))
        self.include_timeline = os.environ.get("PACER_INCLUDE_TIMELINE", "0") == "1"
        self.log_level = os.environ.get("PACER_LOG_LEVEL", "INFO")
