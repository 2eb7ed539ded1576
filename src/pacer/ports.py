"""Snapshot source port plus the file and HTTP adapters behind it.

The engine never reads data itself. Anything that loops over fresh
snapshots (the watcher, a scheduler) goes through a ``SnapshotSource``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx

from pacer.defaults import HTTP_TIMEOUT_SECONDS


@runtime_checkable
class SnapshotSource(Protocol):
    """Returns the wire-shaped snapshot dict for a booking id."""

    def fetch(self, booking_id: str) -> dict[str, Any]: ...


class FileSnapshotSource:
    """Reads a snapshot JSON file on every fetch (the file may be rewritten between polls)."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def fetch(self, booking_id: str) -> dict[str, Any]:
        data = json.loads(self.path.read_text())
        if not isinstance(data, dict):
            raise ValueError(f"{self.path}: snapshot must be a JSON object")
        if booking_id and not (data.get("bookingId") or data.get("booking_id")):
            data["bookingId"] = booking_id
        return data


class HttpSnapshotSource:
    """GETs ``<base_url>/<booking_id>`` from the datastore's read API."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        timeout: float = HTTP_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = headers
        self.base_url = base_url.rstrip("/")

    def fetch(self, booking_id: str) -> dict[str, Any]:
        resp = self._client.get(f"{self.base_url}/{booking_id}", headers=self._headers)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"{resp.url}: snapshot must be a JSON object")
        return data

    def close(self) -> None:
        self._client.close()
