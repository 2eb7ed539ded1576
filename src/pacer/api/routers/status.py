"""Aggregation endpoints: status, insights, timeline, strategies, flags."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from pacer import engine, feature_flags
from pacer.api.schemas import InsightsBody, StatusBody, TimelineBody
from pacer.metrics import list_strategies
from pacer.metrics._time import resolve_now
from pacer.models import ProjectSnapshot
from pacer.status_models import PreviousState
from pacer.timeline import build_timeline

router = APIRouter(tags=["status"])


def _previous(body: StatusBody | InsightsBody) -> PreviousState | None:
    if body.previous is None:
        return None
    return PreviousState.from_dict(body.previous.model_dump())


@router.post("/status")
def status_http(body: StatusBody) -> dict[str, Any]:
    """Full ProjectStatus for a snapshot. Integrity errors return 422."""
    snapshot = ProjectSnapshot.from_dict(body.snapshot.to_payload())
    status = engine.aggregate(
        snapshot,
        _previous(body),
        strategy=body.strategy,
        include_timeline=body.include_timeline,
        include_time_entries=body.include_time_entries,
        now=body.now,
    )
    return status.to_dict()


@router.post("/insights")
def insights_http(body: InsightsBody) -> dict[str, Any]:
    snapshot = ProjectSnapshot.from_dict(body.snapshot.to_payload())
    status = engine.aggregate(
        snapshot, _previous(body), strategy=body.strategy,
        include_timeline=False, now=body.now,
    )
    return {
        "bookingId": status.booking_id,
        "insights": [i.to_dict() for i in status.insights],
        "generatedAt": status.generated_at,
    }


@router.post("/timeline")
def timeline_http(body: TimelineBody) -> dict[str, Any]:
    snapshot = ProjectSnapshot.from_dict(body.snapshot.to_payload())
    now = resolve_now(body.now)
    events = build_timeline(snapshot, now, include_time_entries=body.include_time_entries)
    return {
        "bookingId": snapshot.booking_id,
        "timeline": [e.to_dict() for e in events],
        "generatedAt": now.isoformat(),
    }


@router.get("/strategies")
def strategies_http() -> dict[str, Any]:
    return {"strategies": list_strategies()}


@router.get("/flags")
def flags_http() -> dict[str, Any]:
    return {"flags": feature_flags.list_flags()}
