"""Overall progress strategies.

Two formulas for overall project progress are in use on the dashboard: a
pure milestone ratio and a blended one that gives in-progress milestones
partial credit from their own tasks. Both are exposed as named strategies
so callers pick one by configuration; a weighted variant based on each
milestone's own progress_percentage is also available.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pacer.config import EngineConfig
from pacer.defaults import DEFAULT_PROGRESS_STRATEGY, IN_PROGRESS_CREDIT_CAP
from pacer.metrics._time import clamp_pct, percent, round_half_up
from pacer.models import Milestone, ProjectSnapshot, WorkStatus


class UnknownStrategyError(KeyError):
    """Requested progress strategy is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown progress strategy: {self.name!r} (choose from {', '.join(sorted(STRATEGIES))})"


@runtime_checkable
class ProgressStrategy(Protocol):
    """Computes overall progress (0-100) for a snapshot."""

    name: str

    def overall_progress(self, snapshot: ProjectSnapshot) -> int: ...


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------

class MilestoneRatio:
    """round(100 * completed milestones / total milestones)."""

    name = "milestone_ratio"

    def overall_progress(self, snapshot: ProjectSnapshot) -> int:
        total = len(snapshot.milestones)
        completed = sum(1 for m in snapshot.milestones if m.is_completed)
        return percent(completed, total)


class BlendedWithTaskCredit:
    """Full credit for completed milestones, capped partial credit for in-progress ones.

    Each milestone owns 100/N of the total. An in-progress milestone earns
    at most half its share, scaled by its task completion ratio; without
    tasks its own progress_percentage stands in for the ratio.
    """

    name = "blended"

    def __init__(self, credit_cap: float = IN_PROGRESS_CREDIT_CAP) -> None:
        self.credit_cap = credit_cap

    def overall_progress(self, snapshot: ProjectSnapshot) -> int:
        total = len(snapshot.milestones)
        if total == 0:
            return 0
        share = 100.0 / total
        score = sum(share * self._credit(m) / 100.0 for m in snapshot.milestones)
        return clamp_pct(round_half_up(score))

    def _credit(self, m: Milestone) -> float:
        """Percentage of a milestone's share it has earned."""
        if m.is_completed:
            return 100.0
        if m.status != WorkStatus.IN_PROGRESS:
            return 0.0
        if m.tasks:
            ratio = m.completed_tasks / len(m.tasks)
        else:
            ratio = clamp_pct(m.progress_percentage) / 100.0
        return min(self.credit_cap, self.credit_cap * ratio)


class WeightedPercentage:
    """Weight-averaged milestone progress_percentage (completed counts as 100)."""

    name = "weighted"

    def overall_progress(self, snapshot: ProjectSnapshot) -> int:
        total_weight = 0.0
        weighted = 0.0
        for m in snapshot.milestones:
            weight = m.weight if m.weight > 0 else 1.0
            progress = 100.0 if m.is_completed else float(clamp_pct(m.progress_percentage))
            weighted += progress * weight
            total_weight += weight
        if total_weight <= 0:
            return 0
        return clamp_pct(round_half_up(weighted / total_weight))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

STRATEGIES: dict[str, type] = {
    MilestoneRatio.name: MilestoneRatio,
    BlendedWithTaskCredit.name: BlendedWithTaskCredit,
    WeightedPercentage.name: WeightedPercentage,
}


def get_strategy(name: str | ProgressStrategy | None = None) -> ProgressStrategy:
    """Resolve a strategy by name; ``None`` uses the configured default."""
    if name is None:
        name = EngineConfig().progress_strategy or DEFAULT_PROGRESS_STRATEGY
    if isinstance(name, ProgressStrategy):
        return name
    cls = STRATEGIES.get(str(name).strip().lower())
    if cls is None:
        raise UnknownStrategyError(str(name))
    return cls()


def list_strategies() -> list[dict[str, Any]]:
    configured = EngineConfig().progress_strategy or DEFAULT_PROGRESS_STRATEGY
    return [
        {
            "name": key,
            "class": cls.__name__,
            "description": (cls.__doc__ or "").strip().splitlines()[0],
            "default": key == configured,
        }
        for key, cls in sorted(STRATEGIES.items())
    ]


def overall_progress(snapshot: ProjectSnapshot, strategy: str | ProgressStrategy | None = None) -> int:
    return get_strategy(strategy).overall_progress(snapshot)
