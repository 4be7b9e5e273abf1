"""
ProvisionState — what the last run observed.

Serialized to <state dir>/current.json after every run. It's disposable
and reproducible: delete it and the next run re-probes everything. The
machine itself is the source of truth; this file only lets ``devbox
status`` answer without re-running the probes.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepState(BaseModel):
    """Last observed outcome of a step."""

    label: str
    resource: str = ""               # adapter:name
    last_status: str | None = None   # installed, already_present, failed, ...
    last_run_at: str | None = None
    last_changed_at: str | None = None
    failure_count: int = 0


class RunRecord(BaseModel):
    """Summary of the last run."""

    run_id: str = ""
    profile: str = ""
    started_at: str = ""
    ended_at: str = ""
    status: str = ""                 # completed, halted
    halted_at: int | None = None
    cause: str | None = None
    steps_total: int = 0
    steps_changed: int = 0
    steps_failed: int = 0


class ProvisionState(BaseModel):
    """Root state model — serialized to current.json."""

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Component state ──────────────────────────────────────────
    steps: dict[str, StepState] = Field(default_factory=dict)

    # ── Last run ─────────────────────────────────────────────────
    last_run: RunRecord = Field(default_factory=RunRecord)

    # ── Extensible metadata ──────────────────────────────────────
    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def set_step_state(self, label: str, **kwargs: Any) -> None:
        """Update or create a step state entry."""
        if label in self.steps:
            for key, value in kwargs.items():
                setattr(self.steps[label], key, value)
        else:
            self.steps[label] = StepState(label=label, **kwargs)
