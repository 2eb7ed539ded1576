"""Shared CLI helpers."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any


def _out(data: Any) -> int:
    print(json.dumps(data, indent=2, default=str))
    if isinstance(data, dict) and "error" in data:
        return 1
    return 0


def _load_json(path: str | None) -> dict[str, Any] | None:
    """Read a JSON object from *path*; ``-`` reads stdin."""
    if not path:
        return None
    if path == "-":
        return json.load(sys.stdin)
    return json.loads(Path(path).read_text())
