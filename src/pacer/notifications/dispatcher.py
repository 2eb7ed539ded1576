"""Best-effort notification dispatch. Never raises."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pacer.feature_flags import get_mode, is_enabled
from pacer.notifications.port import NotifyPort
from pacer.observability import record_notification
from pacer.status_models import NotificationEvent

log = logging.getLogger("pacer.notifications")


class LogNotifyAdapter:
    """Writes events to the log instead of delivering them."""

    def send(self, channel: str, event_type: str, payload: dict[str, Any]) -> bool:
        log.info("Notification [%s] %s: %s", channel, event_type, payload.get("title", ""),
                 extra={"booking_id": payload.get("bookingId")})
        return True

    def is_available(self) -> bool:
        return True


def dispatch(
    events: Iterable[NotificationEvent],
    adapter: NotifyPort | None,
    channel: str = "default",
) -> int:
    """Hand events to *adapter*. Returns how many were accepted. Never raises."""
    if not is_enabled("notifications"):
        return 0
    events = list(events)
    if not events:
        return 0

    if get_mode("notifications") == "shadow":
        for e in events:
            log.debug("Shadow notification: %s %s", e.type, e.to_dict())
            record_notification(e.type, "shadow")
        return 0

    try:
        available = adapter is not None and adapter.is_available()
    except Exception:
        log.exception("Notification adapter availability check failed")
        available = False
    if not available:
        log.debug("No notification adapter available, dropping %d event(s)", len(events))
        return 0

    sent = 0
    for e in events:
        try:
            delivered = adapter.send(channel, e.type, e.to_dict())
        except Exception:
            log.exception("Notification dispatch failed for %s", e.type)
            delivered = False
        record_notification(e.type, "sent" if delivered else "failed")
        sent += 1 if delivered else 0
    return sent
