"""Persisted companion state: only the click-through flag survives restarts.

File location: ~/.config/ethereal/state.json
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

STATE_FILE = Path("~/.config/ethereal/state.json").expanduser()

PERSISTED_KEYS = frozenset({"is_click_through"})


def _read_object(path: Path) -> dict[str, Any]:
    """Parse *path* as a JSON object; raises ValueError for anything else."""
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _write_atomic(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".state_")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def load_state(path: Path = STATE_FILE) -> dict[str, Any]:
    """Saved values restricted to PERSISTED_KEYS; {} when absent or unreadable."""
    if not path.exists():
        return {}
    try:
        saved = _read_object(path)
    except Exception as e:
        log.warning("persistence: failed to load %s: %s", path, e)
        return {}
    state = {k: v for k, v in saved.items() if k in PERSISTED_KEYS}
    log.debug("persistence: restored %s from %s", sorted(state), path)
    return state


def save_value(name: str, value: Any, path: Path = STATE_FILE) -> None:
    """Upsert one persisted key. Failures are logged, never raised."""
    if name not in PERSISTED_KEYS:
        log.warning("persistence: refusing to save unknown key %s", name)
        return

    current: dict[str, Any] = {}
    if path.exists():
        try:
            current = _read_object(path)
        except Exception:
            log.warning("persistence: replacing unreadable %s", path)

    current[name] = value
    try:
        _write_atomic(path, current)
    except Exception as e:
        log.warning("persistence: failed to save %s=%s: %s", name, value, e)
