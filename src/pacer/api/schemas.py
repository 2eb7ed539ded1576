"""Pydantic request models for strict input validation.

Entity payloads stay loose (``extra="allow"``): the engine degrades
malformed values itself, so only the shape needed to route the request is
enforced here.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

class EntityBody(BaseModel):
    id: str | int

    model_config = {"extra": "allow"}


class MilestoneBody(EntityBody):
    tasks: list[EntityBody] = Field(default_factory=list)


class SnapshotBody(BaseModel):
    """Top-level snapshot; camelCase and snake_case keys are both accepted."""

    bookingId: str | int | None = Field(
        default=None, validation_alias=AliasChoices("bookingId", "booking_id"),
    )
    milestones: list[MilestoneBody] = Field(default_factory=list)
    tasks: list[EntityBody] | None = None
    timeEntries: list[EntityBody] | None = Field(
        default=None, validation_alias=AliasChoices("timeEntries", "time_entries"),
    )
    commentsByMilestone: dict[str, list[EntityBody]] | None = Field(
        default=None, validation_alias=AliasChoices("commentsByMilestone", "comments_by_milestone"),
    )
    approvalsByMilestone: dict[str, list[EntityBody]] | None = Field(
        default=None, validation_alias=AliasChoices("approvalsByMilestone", "approvals_by_milestone"),
    )

    model_config = {"extra": "allow"}

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PreviousBody(BaseModel):
    metrics: dict[str, Any]
    timestamp: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class StatusBody(BaseModel):
    snapshot: SnapshotBody
    previous: PreviousBody | None = None
    strategy: str | None = None
    include_timeline: bool | None = None
    include_time_entries: bool = False
    now: str | None = Field(default=None, description="Evaluation time (ISO-8601); defaults to server time")


class InsightsBody(BaseModel):
    snapshot: SnapshotBody
    previous: PreviousBody | None = None
    strategy: str | None = None
    now: str | None = None


class TimelineBody(BaseModel):
    snapshot: SnapshotBody
    include_time_entries: bool = False
    now: str | None = None
