"""Shared utilities for metric calculators."""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any

_SECONDS_PER_DAY = 86400


# Short UTC offsets as emitted by Postgres ("+00", "+0530") after a time part
_SHORT_OFFSET = re.compile(r"^(.*[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)([+-]\d{2})(\d{2})?$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_ts(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp or date into an aware UTC datetime.

    Returns ``None`` for missing, unparsable or out-of-range values. Naive
    values are taken as UTC; date-only values mean midnight UTC.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        short = _SHORT_OFFSET.match(raw)
        if short:
            raw = f"{short.group(1)}{short.group(2)}:{short.group(3) or '00'}"
        try:
            dt = datetime.fromisoformat(raw)
        except (ValueError, OverflowError):
            return None
    else:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    try:
        return dt.astimezone(timezone.utc)
    except OverflowError:
        return None


def resolve_now(now: datetime | str | None) -> datetime:
    return parse_ts(now) or utcnow()


def days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / _SECONDS_PER_DAY


def shift(moment: datetime, delta: timedelta) -> datetime:
    """*moment* + *delta*, saturating at the datetime range bounds."""
    try:
        return moment + delta
    except OverflowError:
        bound = datetime.max if delta > timedelta(0) else datetime.min
        return bound.replace(tzinfo=moment.tzinfo)


def _since_days(now: datetime, days: float) -> datetime:
    return shift(now, -timedelta(days=days))


def _safe_avg(values: list[float]) -> float:
    """Average of a list, returning 0.0 for empty lists."""
    return sum(values) / len(values) if values else 0.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(part: float, whole: float) -> int:
    """Integer percentage of part/whole, clamped to [0, 100]; 0 if whole is 0."""
    if whole <= 0:
        return 0
    return clamp_pct(round_half_up(100.0 * part / whole))


def clamp_pct(value: float) -> int:
    return max(0, min(100, int(value)))


def non_negative(value: float) -> float:
    return value if value > 0 else 0.0
