"""Argparse parser definition for Pacer CLI."""

from __future__ import annotations

import argparse

from pacer.metrics import STRATEGIES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pacer",
        description="Progress aggregation and insights for project dashboards",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: PACER_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command")

    _register_engine_commands(sub)
    _register_info_commands(sub)
    _register_server_commands(sub)

    return parser


def _add_snapshot_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--file", required=True, help="Snapshot JSON file ('-' for stdin)")
    p.add_argument("--now", help="Evaluation time (ISO-8601); default is the current time")


def _register_engine_commands(sub: argparse._SubParsersAction) -> None:
    # -- status --
    p = sub.add_parser("status", help="Aggregate a snapshot into a ProjectStatus")
    _add_snapshot_args(p)
    p.add_argument("--previous", help="Previous state JSON ({metrics, timestamp}) for deltas")
    p.add_argument("--strategy", choices=sorted(STRATEGIES))
    p.add_argument("--timeline", action="store_true", help="Include the synthesized timeline")
    p.add_argument("--save-previous", help="Write this run's state to a file for the next --previous")

    # -- insights --
    p = sub.add_parser("insights", help="Only the insights for a snapshot")
    _add_snapshot_args(p)
    p.add_argument("--previous")
    p.add_argument("--strategy", choices=sorted(STRATEGIES))

    # -- timeline --
    p = sub.add_parser("timeline", help="Chronological event list for a snapshot")
    _add_snapshot_args(p)
    p.add_argument("--time-entries", action="store_true", help="Include time entry events")


def _register_info_commands(sub: argparse._SubParsersAction) -> None:
    sub.add_parser("strategies", help="List progress strategies")
    sub.add_parser("flags", help="List feature flags and their sources")


def _register_server_commands(sub: argparse._SubParsersAction) -> None:
    # -- serve --
    p = sub.add_parser("serve", help="Start HTTP API server")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=9877)

    # -- watch --
    p = sub.add_parser("watch", help="Poll a snapshot source and re-aggregate on an interval")
    p.add_argument("--booking-id", help="Booking to track (default: PACER_WATCH_BOOKING_ID)")
    src = p.add_mutually_exclusive_group()
    src.add_argument("--file", help="Snapshot JSON file to re-read each cycle")
    src.add_argument("--url", help="Read API base URL; GETs <url>/<booking-id>")
    p.add_argument("--interval", type=float, help="Seconds between polls")
