"""
State file persistence — atomic read/write for ProvisionState.

State lives in ``<state dir>/current.json``; the state directory is
DEVBOX_STATE_DIR or ``~/.local/state/devbox``. Writes go to a temp file
in the same directory and are renamed into place, so a crash mid-write
never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from devbox.core.models.state import ProvisionState

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = "~/.local/state/devbox"
DEFAULT_STATE_FILE = "current.json"


def state_dir() -> Path:
    """The directory holding devbox state and run history."""
    return Path(os.environ.get("DEVBOX_STATE_DIR") or DEFAULT_STATE_DIR).expanduser()


def default_state_path(directory: Path | None = None) -> Path:
    """Path of current.json inside the state directory."""
    return (directory or state_dir()) / DEFAULT_STATE_FILE


def load_state(path: Path) -> ProvisionState:
    """Load state from a JSON file.

    A missing or unreadable file yields a fresh state; the next run
    rebuilds it from the probes.
    """
    if not path.is_file():
        logger.info("No state file at %s — starting fresh", path)
        return ProvisionState()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        state = ProvisionState.model_validate(data)
        logger.debug("Loaded state from %s (updated_at=%s)", path, state.updated_at)
        return state
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s — starting fresh", path, e)
        return ProvisionState()
    except Exception as e:
        logger.warning("Cannot load state from %s: %s — starting fresh", path, e)
        return ProvisionState()


def save_state(state: ProvisionState, path: Path) -> None:
    """Save state to a JSON file (atomic write)."""
    state.touch()
    path.parent.mkdir(parents=True, exist_ok=True)

    content = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".state_", suffix=".tmp")
    os.close(fd)
    tmp = Path(tmp_path)
    try:
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(path)
        logger.debug("State saved to %s", path)
    except Exception as e:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save state to %s: %s", path, e)
        raise
