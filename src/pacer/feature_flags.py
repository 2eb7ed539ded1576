"""Toggles for the optional parts of an aggregation.

Each flag starts from its entry in ``_DEFINITIONS``. A flags file in the
working directory (``.pacer/flags.json``, else ``flags.json``) may override
it, and ``PACER_FF_<NAME>`` / ``PACER_FF_<NAME>_MODE`` environment
variables override both. A file entry is either a bare boolean or an
object with ``enabled`` and ``mode`` keys.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any

log = logging.getLogger("pacer.feature_flags")


@dataclass
class FlagState:
    name: str
    enabled: bool = True
    mode: str = ""                  # notifications only: shadow | enforce
    description: str = ""
    source: str = "default"         # default | config | env | api

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        if not self.mode:
            del d["mode"]
        return d


_DEFINITIONS: tuple[FlagState, ...] = (
    FlagState("extended_insights", description="Deadline, slow-milestone, tracking-gap and spread insights"),
    FlagState("health_score", description="Composite 0-100 health score"),
    FlagState("forecast", description="Hours-based completion forecast"),
    FlagState("notifications", mode="enforce", description="Dispatch notification events to the adapter"),
)

_FLAG_FILES = (Path(".pacer/flags.json"), Path("flags.json"))
_TRUTHY = {"1", "true", "yes", "on"}

_flags: dict[str, FlagState] = {}
_loaded = False


def _read_flags_file() -> dict[str, Any]:
    path = next((p for p in _FLAG_FILES if p.exists()), None)
    if path is None:
        return {}
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError):
        log.warning("Ignoring unreadable flags file %s", path)
        return {}
    if not isinstance(data, dict):
        log.warning("Ignoring flags file %s: expected an object", path)
        return {}
    return data


def _apply_file_entry(state: FlagState, entry: Any) -> FlagState:
    if isinstance(entry, bool):
        return replace(state, enabled=entry, source="config")
    if isinstance(entry, dict):
        return replace(
            state,
            enabled=bool(entry.get("enabled", state.enabled)),
            mode=str(entry.get("mode", state.mode)),
            source="config",
        )
    log.warning("Ignoring flags file entry for %s: %r", state.name, entry)
    return state


def _apply_env(state: FlagState) -> FlagState:
    key = f"PACER_FF_{state.name.upper()}"
    enabled, mode = os.environ.get(key), os.environ.get(f"{key}_MODE")
    if enabled is not None:
        state = replace(state, enabled=enabled.strip().lower() in _TRUTHY, source="env")
    if mode is not None:
        state = replace(state, mode=mode.strip().lower(), source="env")
    return state


def _load_flags() -> None:
    global _loaded
    overrides = _read_flags_file()
    for definition in _DEFINITIONS:
        state = replace(definition)
        if definition.name in overrides:
            state = _apply_file_entry(state, overrides[definition.name])
        _flags[definition.name] = _apply_env(state)
    _loaded = True


def _state(name: str) -> FlagState | None:
    if not _loaded:
        _load_flags()
    return _flags.get(name)


def is_enabled(flag_name: str) -> bool:
    """Unknown flags count as enabled."""
    state = _state(flag_name)
    return state.enabled if state else True


def get_mode(flag_name: str) -> str:
    state = _state(flag_name)
    return state.mode if state else ""


def list_flags() -> list[dict[str, Any]]:
    if not _loaded:
        _load_flags()
    return [_flags[name].to_dict() for name in sorted(_flags)]


def set_flag(
    flag_name: str,
    *,
    enabled: bool | None = None,
    mode: str | None = None,
) -> FlagState | None:
    """Change a flag for the rest of this process; ``None`` for unknown names."""
    state = _state(flag_name)
    if state is None:
        return None
    if enabled is not None:
        state.enabled = enabled
    if mode is not None:
        state.mode = mode
    state.source = "api"
    log.info("Flag %s set: enabled=%s mode=%s", flag_name, state.enabled, state.mode)
    return state


def reload_flags() -> None:
    """Drop runtime changes and re-read the file and environment."""
    _flags.clear()
    _load_flags()
