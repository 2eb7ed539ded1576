"""CLI command handlers: each takes parsed args and returns an exit code."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from pacer import engine, feature_flags
from pacer.cli._helpers import _load_json, _out
from pacer.metrics import list_strategies
from pacer.metrics._time import resolve_now
from pacer.models import ProjectSnapshot, ValidationError
from pacer.timeline import build_timeline


def cmd_status(args: argparse.Namespace) -> int:
    result = engine.aggregate_payload(
        _load_json(args.file) or {},
        _load_json(args.previous),
        strategy=args.strategy,
        include_timeline=args.timeline or None,
        now=args.now,
    )
    if args.save_previous and "error" not in result:
        state = {
            "metrics": {k: v for k, v in result.items()
                        if k not in ("insights", "timeline", "notifications")},
            "timestamp": result["generatedAt"],
        }
        Path(args.save_previous).write_text(json.dumps(state, indent=2))
    return _out(result)


def cmd_insights(args: argparse.Namespace) -> int:
    result = engine.aggregate_payload(
        _load_json(args.file) or {},
        _load_json(args.previous),
        strategy=args.strategy,
        include_timeline=False,
        now=args.now,
    )
    if "error" in result:
        return _out(result)
    return _out({"bookingId": result["bookingId"], "insights": result["insights"]})


def cmd_timeline(args: argparse.Namespace) -> int:
    try:
        snapshot = ProjectSnapshot.from_dict(_load_json(args.file) or {})
    except ValidationError as e:
        return _out({"error": engine.INTEGRITY_ERROR, "details": e.errors})
    now = resolve_now(args.now)
    events = build_timeline(snapshot, now, include_time_entries=args.time_entries)
    return _out({"bookingId": snapshot.booking_id, "timeline": [e.to_dict() for e in events]})


def cmd_strategies(args: argparse.Namespace) -> int:
    return _out({"strategies": list_strategies()})


def cmd_flags(args: argparse.Namespace) -> int:
    return _out({"flags": feature_flags.list_flags()})


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from pacer.api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_config=None)
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    from pacer.watcher import WatchConfig, run_watcher

    config = WatchConfig()
    if args.booking_id:
        config.booking_id = args.booking_id
    if args.file:
        config.file, config.url = args.file, ""
    if args.url:
        config.url, config.file = args.url, ""
    if args.interval is not None:
        config.poll_interval = args.interval
    if not config.booking_id:
        return _out({"error": "--booking-id (or PACER_WATCH_BOOKING_ID) is required"})
    if not (config.file or config.url):
        return _out({"error": "--file or --url (or PACER_WATCH_FILE / PACER_WATCH_URL) is required"})
    run_watcher(config)
    return 0
