"""
Status use case — what the last recorded run left behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from devbox.core.models.state import ProvisionState
from devbox.core.persistence.history import RunHistory, RunHistoryEntry
from devbox.core.persistence.state_file import default_state_path, load_state, state_dir


@dataclass
class StatusResult:
    """Last run summary plus recent history."""

    state: ProvisionState | None = None
    state_path: Path | None = None
    history: list[RunHistoryEntry] = field(default_factory=list)
    error: str | None = None

    @property
    def has_run(self) -> bool:
        return bool(self.state and self.state.last_run.run_id)

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["state_path"] = str(self.state_path) if self.state_path else None
        if self.state:
            result["last_run"] = self.state.last_run.model_dump(mode="json")
            result["steps"] = {
                label: {
                    "resource": s.resource,
                    "last_status": s.last_status,
                    "last_run_at": s.last_run_at,
                    "last_changed_at": s.last_changed_at,
                    "failure_count": s.failure_count,
                }
                for label, s in self.state.steps.items()
            }
        result["history"] = [h.model_dump(mode="json") for h in self.history]
        return result


def get_status(state_directory: Path | None = None, history: int = 5) -> StatusResult:
    """Load the recorded state and the most recent history entries.

    Args:
        state_directory: Where state lives (default: DEVBOX_STATE_DIR).
        history: How many history entries to include.
    """
    directory = state_directory or state_dir()
    result = StatusResult(state_path=default_state_path(directory))
    result.state = load_state(result.state_path)
    result.history = RunHistory(directory).read_recent(history)
    return result
