"""HTTP POST webhook adapter with HMAC-SHA256 signing.

Hands notification events to the external delivery service.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import time
from pathlib import Path
from typing import Any

import httpx

from pacer.defaults import HTTP_TIMEOUT_SECONDS
from pacer.models import now_iso

log = logging.getLogger("pacer.notifications.webhook")


class WebhookNotifyAdapter:
    """HTTP POST webhook with HMAC-SHA256 signing."""

    def __init__(
        self,
        urls: dict[str, str] | None = None,
        secret: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._urls = urls if urls is not None else self._load_config()
        self._secret = secret if secret is not None else os.environ.get("PACER_WEBHOOK_SECRET", "")
        self._client = client

    def _load_config(self) -> dict[str, str]:
        for p in [Path(".pacer/notifications.json"), Path("notifications.json")]:
            if p.exists():
                try:
                    data = json.loads(p.read_text())
                    return data.get("webhooks", {})
                except (json.JSONDecodeError, OSError):
                    log.warning("Ignoring unreadable notification config %s", p)
        url = os.environ.get("PACER_WEBHOOK_URL", "")
        return {"default": url} if url else {}

    def sign(self, body: str) -> str:
        return hmac.new(self._secret.encode(), body.encode(), hashlib.sha256).hexdigest()

    def send(self, channel: str, event_type: str, payload: dict[str, Any]) -> bool:
        url = self._urls.get(channel) or self._urls.get("default", "")
        if not url:
            return False

        body = json.dumps({
            "event_type": event_type,
            "payload": payload,
            "timestamp": now_iso(),
        })
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._secret:
            headers["X-Pacer-Signature"] = f"sha256={self.sign(body)}"

        post = self._client.post if self._client is not None else httpx.post
        for attempt in range(2):  # 1 retry
            try:
                resp = post(url, content=body, headers=headers, timeout=HTTP_TIMEOUT_SECONDS)
                if resp.status_code < 400:
                    log.debug("Webhook %s delivered to %s (%d)", event_type, url, resp.status_code)
                    return True
                log.warning("Webhook %s rejected by %s (%d)", event_type, url, resp.status_code)
            except httpx.HTTPError:
                log.warning("Webhook %s to %s failed (attempt %d)", event_type, url, attempt + 1)
            if attempt == 0:
                time.sleep(1)
        return False

    def is_available(self) -> bool:
        return bool(self._urls)
