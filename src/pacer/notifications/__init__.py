"""Notification events: detection from deltas plus best-effort dispatch."""

from pacer.notifications.dispatcher import LogNotifyAdapter, dispatch
from pacer.notifications.events import detect_notifications
from pacer.notifications.port import NotifyPort
from pacer.notifications.webhook_adapter import WebhookNotifyAdapter

__all__ = [
    "LogNotifyAdapter",
    "NotifyPort",
    "WebhookNotifyAdapter",
    "detect_notifications",
    "dispatch",
]
