"""Logging setup, in-process counters and the HTTP access middleware.

Counters are kept per process and rendered in the Prometheus text format
by ``generate_metrics`` (served on ``GET /metrics``).
"""

from __future__ import annotations

import json
import logging
import time
from collections import defaultdict
from typing import Any

from fastapi import FastAPI, Request, Response

_CONTEXT_FIELDS = ("booking_id", "strategy", "method", "route", "status_code", "duration_ms", "trace_id")

access_log = logging.getLogger("pacer.access")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; context passed via ``extra=`` is kept."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key)) for key in _CONTEXT_FIELDS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Route all logging through a single JSON handler on stderr."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for noisy in ("uvicorn.access", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------

# name -> (type, help); also fixes the render order
_HELP: dict[str, tuple[str, str]] = {
    "pacer_http_requests_total": ("counter", "HTTP requests by method, route and status."),
    "pacer_http_request_duration_seconds": ("summary", "HTTP request time by method and route."),
    "pacer_aggregations_total": ("counter", "Aggregations computed by progress strategy."),
    "pacer_aggregation_duration_seconds": ("summary", "Aggregation time by progress strategy."),
    "pacer_degraded_metrics_total": ("counter", "Metric calculators that fell back to their default."),
    "pacer_notifications_total": ("counter", "Notification events by type and outcome."),
}

Labels = tuple[tuple[str, str], ...]

_series: dict[str, dict[Labels, float]] = defaultdict(lambda: defaultdict(float))


def _labels(**labels: Any) -> Labels:
    return tuple(sorted((k, str(v)) for k, v in labels.items()))


def _inc(name: str, value: float = 1.0, **labels: Any) -> None:
    _series[name][_labels(**labels)] += value


def _observe(name: str, seconds: float, **labels: Any) -> None:
    _inc(f"{name}_sum", seconds, **labels)
    _inc(f"{name}_count", 1, **labels)


def record_request(method: str, route: str, status: int, duration: float) -> None:
    _inc("pacer_http_requests_total", method=method, route=route, status=status)
    _observe("pacer_http_request_duration_seconds", duration, method=method, route=route)


def record_aggregation(strategy: str, duration: float) -> None:
    _inc("pacer_aggregations_total", strategy=strategy)
    _observe("pacer_aggregation_duration_seconds", duration, strategy=strategy)


def record_degraded(metric: str) -> None:
    _inc("pacer_degraded_metrics_total", metric=metric)


def record_notification(event_type: str, outcome: str) -> None:
    """*outcome* is one of ``sent``, ``failed`` or ``shadow``."""
    _inc("pacer_notifications_total", type=event_type, outcome=outcome)


def reset_metrics() -> None:
    _series.clear()


def _render(name: str, labels: Labels, value: float) -> str:
    text = ",".join(f'{k}="{v}"' for k, v in labels)
    number = f"{value:.6f}" if name.endswith("_sum") else str(int(value))
    return f"{name}{{{text}}} {number}" if text else f"{name} {number}"


def generate_metrics() -> str:
    """Prometheus text exposition of every counter recorded so far."""
    lines: list[str] = []
    for base, (kind, help_text) in _HELP.items():
        lines.append(f"# HELP {base} {help_text}")
        lines.append(f"# TYPE {base} {kind}")
        names = [f"{base}_sum", f"{base}_count"] if kind == "summary" else [base]
        for name in names:
            lines.extend(_render(name, labels, value) for labels, value in sorted(_series[name].items()))
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

def _route_label(request: Request, status: int) -> str:
    route = request.scope.get("route")
    if route is not None:
        return getattr(route, "path", request.url.path)
    return "unmatched" if status == 404 else request.url.path


def add_observability_middleware(app: FastAPI) -> None:
    """Count and log every request handled by *app*."""

    @app.middleware("http")
    async def observe_request(request: Request, call_next) -> Response:
        started = time.perf_counter()
        response: Response = await call_next(request)
        duration = time.perf_counter() - started

        route = _route_label(request, response.status_code)
        record_request(request.method, route, response.status_code, duration)
        access_log.info(
            "%s %s %d %.0fms",
            request.method, request.url.path, response.status_code, duration * 1000,
            extra={
                "method": request.method,
                "route": route,
                "status_code": response.status_code,
                "duration_ms": round(duration * 1000, 1),
                "trace_id": request.headers.get("x-trace-id") or None,
            },
        )
        return response
