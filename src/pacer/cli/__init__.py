"""CLI for Pacer.

Commands:
  pacer status --file snapshot.json [--previous prev.json] [--strategy] [--timeline]
  pacer insights --file snapshot.json
  pacer timeline --file snapshot.json [--time-entries]
  pacer strategies
  pacer flags
  pacer serve
  pacer watch --booking-id B1 (--file snapshot.json | --url http://...)
"""

from __future__ import annotations

import sys

from pacer.cli._helpers import _out  # noqa: F401
from pacer.cli._parser import build_parser
from pacer.cli.commands import (
    cmd_flags,
    cmd_insights,
    cmd_serve,
    cmd_status,
    cmd_strategies,
    cmd_timeline,
    cmd_watch,
)
from pacer.config import EngineConfig
from pacer.observability import setup_logging


# ===================================================================
# Dispatch
# ===================================================================

_DISPATCH = {
    "status": cmd_status,
    "insights": cmd_insights,
    "timeline": cmd_timeline,
    "strategies": cmd_strategies,
    "flags": cmd_flags,
    "serve": cmd_serve,
    "watch": cmd_watch,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if not args.command:
        parser.print_help()
        return 1

    handler = _DISPATCH.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    setup_logging(args.log_level or EngineConfig().log_level)
    try:
        return handler(args)
    except (OSError, ValueError) as e:
        return _out({"error": str(e)})
