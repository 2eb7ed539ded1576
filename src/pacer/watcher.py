"""Live progress watcher for Pacer.

Runs as a **separate process**. Polls a snapshot source on a fixed
cadence, re-runs the aggregation with the previous result it keeps in
memory, logs progress deltas and dispatches notification events.

Usage:
    python -m pacer.watcher              # uses env vars
    pacer watch --booking-id B1 --file snapshot.json

Configuration (env vars):
    PACER_WATCH_BOOKING_ID: booking to track (required)
    PACER_WATCH_FILE: read snapshots from this JSON file
    PACER_WATCH_URL: or GET snapshots from <url>/<booking_id>
    PACER_WATCH_TOKEN: bearer token for PACER_WATCH_URL
    PACER_WATCH_INTERVAL: seconds between polls (default 30)
    PACER_WATCH_TIMEOUT: HTTP timeout in seconds (default 10)
"""

from __future__ import annotations

import logging
import os
import signal
import threading
from typing import Any

from pacer import engine
from pacer.config import EngineConfig
from pacer.defaults import HTTP_TIMEOUT_SECONDS, WATCH_POLL_INTERVAL_SECONDS
from pacer.models import ProjectSnapshot, ValidationError
from pacer.notifications import LogNotifyAdapter, NotifyPort, WebhookNotifyAdapter, dispatch
from pacer.observability import setup_logging
from pacer.ports import FileSnapshotSource, HttpSnapshotSource, SnapshotSource
from pacer.status_models import PreviousState, ProjectStatus

log = logging.getLogger("pacer.watcher")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class WatchConfig:
    """Watcher runtime configuration from environment."""

    def __init__(self) -> None:
        self.booking_id = os.environ.get("PACER_WATCH_BOOKING_ID", "")
        self.file = os.environ.get("PACER_WATCH_FILE", "")
        self.url = os.environ.get("PACER_WATCH_URL", "")
        self.token = os.environ.get("PACER_WATCH_TOKEN", "")
        self.poll_interval = float(os.environ.get("PACER_WATCH_INTERVAL", str(WATCH_POLL_INTERVAL_SECONDS)))
        self.timeout = float(os.environ.get("PACER_WATCH_TIMEOUT", str(HTTP_TIMEOUT_SECONDS)))

    def build_source(self) -> SnapshotSource:
        if self.file:
            return FileSnapshotSource(self.file)
        if self.url:
            return HttpSnapshotSource(self.url, token=self.token, timeout=self.timeout)
        raise ValueError("Set PACER_WATCH_FILE or PACER_WATCH_URL")


# ---------------------------------------------------------------------------
# Watch loop
# ---------------------------------------------------------------------------

class ProgressWatcher:
    """Polling-based re-aggregation with graceful shutdown."""

    def __init__(
        self,
        source: SnapshotSource,
        config: WatchConfig | None = None,
        notifier: NotifyPort | None = None,
        engine_config: EngineConfig | None = None,
    ) -> None:
        self.config = config or WatchConfig()
        self.source = source
        self.notifier = notifier
        self.engine_config = engine_config or EngineConfig()
        self._running = False
        self._stop_event = threading.Event()
        self._cycles = 0
        self._failures = 0
        self._notified = 0
        self._previous: PreviousState | None = None
        self._last: ProjectStatus | None = None

    def start(self) -> None:
        """Start the watch loop (blocking). Installs signal handlers."""
        self._running = True
        self._stop_event.clear()
        self._install_signal_handlers()

        log.info(
            "Watcher starting: booking=%s poll=%.1fs source=%s",
            self.config.booking_id, self.config.poll_interval, type(self.source).__name__,
            extra={"booking_id": self.config.booking_id},
        )

        try:
            while self._running:
                self.poll_once()
                if not self._running:
                    break
                self._stop_event.wait(self.config.poll_interval)
        finally:
            self._shutdown()

    def stop(self) -> None:
        """Signal the watcher to stop after the current cycle."""
        log.info("Watcher stop requested")
        self._running = False
        self._stop_event.set()

    def _install_signal_handlers(self) -> None:
        """Capture SIGTERM and SIGINT for graceful shutdown.

        Only works from the main thread; skipped otherwise (e.g. inside a
        test thread).
        """
        if threading.current_thread() is not threading.main_thread():
            log.debug("Not main thread, skipping signal handler installation")
            return

        def _handler(signum: int, frame: Any) -> None:
            log.info("Received %s, initiating graceful shutdown", signal.Signals(signum).name)
            self.stop()

        signal.signal(signal.SIGTERM, _handler)
        signal.signal(signal.SIGINT, _handler)

    def poll_once(self) -> ProjectStatus | None:
        """Execute one fetch + aggregate cycle. Failures are logged, never raised."""
        self._cycles += 1
        bid = self.config.booking_id
        try:
            payload = self.source.fetch(bid)
            snapshot = ProjectSnapshot.from_dict(payload)
            status = engine.aggregate(snapshot, self._previous, config=self.engine_config)
        except ValidationError as e:
            self._failures += 1
            log.error("Snapshot for %s failed integrity checks: %s", bid, e, extra={"booking_id": bid})
            return None
        except Exception:
            self._failures += 1
            log.exception("Error during watch cycle %d for %s", self._cycles, bid)
            return None

        if status.progress_delta:
            log.info(
                "Booking %s progress %+d%% -> %d%%",
                snapshot.booking_id, status.progress_delta, status.metrics.overall_progress,
                extra={"booking_id": snapshot.booking_id},
            )
        self._notified += dispatch(status.notifications, self.notifier)

        self._previous = status.to_previous()
        self._last = status
        return status

    def _shutdown(self) -> None:
        log.info(
            "Watcher shutting down: cycles=%d failures=%d notified=%d",
            self._cycles, self._failures, self._notified,
        )
        close = getattr(self.source, "close", None)
        if callable(close):
            close()

    # Public read-only state for tests / monitoring
    @property
    def cycles(self) -> int:
        return self._cycles

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def previous(self) -> PreviousState | None:
        return self._previous

    @property
    def last_status(self) -> ProjectStatus | None:
        return self._last

    @property
    def is_running(self) -> bool:
        return self._running


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run_watcher(config: WatchConfig | None = None) -> None:
    """Start the watcher (blocking). For CLI / __main__."""
    engine_config = EngineConfig()
    setup_logging(engine_config.log_level)
    config = config or WatchConfig()
    notifier = WebhookNotifyAdapter()
    if not notifier.is_available():
        notifier = LogNotifyAdapter()
    watcher = ProgressWatcher(config.build_source(), config, notifier, engine_config)
    watcher.start()


if __name__ == "__main__":
    run_watcher()
