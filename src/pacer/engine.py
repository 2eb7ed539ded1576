"""Aggregation facade: snapshot in, ProjectStatus out.

The engine is pure. It holds no state between calls; the only cross-call
input is the caller-owned ``previous`` state, which the caller gets back
from :meth:`ProjectStatus.to_previous` and passes into the next call.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any

from pacer.config import EngineConfig
from pacer.insights import generate_insights
from pacer.metrics import compute_metrics, get_strategy
from pacer.metrics._time import parse_ts, resolve_now
from pacer.metrics.progress import ProgressStrategy, UnknownStrategyError
from pacer.metrics.workload import completed_between
from pacer.models import ProjectSnapshot, ValidationError
from pacer.notifications.events import detect_notifications
from pacer.observability import record_aggregation
from pacer.status_models import PreviousState, ProjectStatus
from pacer.timeline import build_timeline

log = logging.getLogger("pacer.engine")

INTEGRITY_ERROR = "data integrity issue"


def aggregate(
    snapshot: ProjectSnapshot,
    previous: PreviousState | None = None,
    *,
    strategy: str | ProgressStrategy | None = None,
    include_timeline: bool | None = None,
    include_time_entries: bool = False,
    now: datetime | str | None = None,
    config: EngineConfig | None = None,
) -> ProjectStatus:
    """Compute metrics, insights and (optionally) the timeline for *snapshot*.

    Same snapshot, previous and ``now`` always yield the same status.
    Raises :class:`UnknownStrategyError` for an unregistered strategy name;
    malformed entity data never raises.
    """
    cfg = config or EngineConfig()
    ts = resolve_now(now)
    started = time.perf_counter()

    strat = get_strategy(strategy if strategy is not None else cfg.progress_strategy)
    metrics = compute_metrics(snapshot, ts, strat, cfg.velocity_window_days)

    status = ProjectStatus(
        booking_id=snapshot.booking_id,
        metrics=metrics,
        generated_at=ts.isoformat(),
        insights=generate_insights(metrics, previous, snapshot, ts),
    )

    if include_timeline is None:
        include_timeline = cfg.include_timeline
    if include_timeline:
        status.timeline = build_timeline(snapshot, ts, include_time_entries=include_time_entries)

    if previous is not None:
        status.progress_delta = metrics.overall_progress - previous.metrics.overall_progress
        since = parse_ts(previous.timestamp)
        status.completed_since_previous = completed_between(snapshot, since, ts) if since else 0

    status.notifications = detect_notifications(metrics, previous, snapshot, ts)

    record_aggregation(metrics.strategy, time.perf_counter() - started)
    log.debug(
        "Aggregated booking %s: progress=%d risk=%s insights=%d",
        snapshot.booking_id, metrics.overall_progress, metrics.risk_level.value,
        len(status.insights),
        extra={"booking_id": snapshot.booking_id, "strategy": metrics.strategy},
    )
    return status


def aggregate_payload(
    payload: dict[str, Any],
    previous: dict[str, Any] | None = None,
    **kwargs: Any,
) -> dict[str, Any]:
    """JSON-in, JSON-out wrapper around :func:`aggregate`.

    Integrity failures come back as ``{"error": ..., "details": [...]}``
    instead of raising, so surfaces can pass the dict straight through.
    """
    try:
        snapshot = ProjectSnapshot.from_dict(payload)
    except ValidationError as e:
        log.warning("Rejected snapshot: %s", e, extra={"booking_id": payload.get("bookingId")})
        return {"error": INTEGRITY_ERROR, "details": e.errors}
    except (KeyError, TypeError, AttributeError) as e:
        return {"error": INTEGRITY_ERROR, "details": [f"malformed snapshot: {e}"]}

    prev = PreviousState.from_dict(previous) if previous else None
    try:
        return aggregate(snapshot, prev, **kwargs).to_dict()
    except UnknownStrategyError as e:
        return {"error": str(e)}
