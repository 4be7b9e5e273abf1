"""
Run history — append-only log of provisioning runs.

Every non-dry run appends one line to ``<state dir>/history.ndjson``.
Entries are never modified or deleted; the file answers "when did this
machine last change, and what broke".
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_FILE = "history.ndjson"


class RunHistoryEntry(BaseModel):
    """One line of the run history."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    profile: str = ""

    status: str = ""               # completed, halted
    halted_at: int | None = None
    cause: str = ""

    steps_total: int = 0
    steps_changed: int = 0
    steps_failed: int = 0
    duration_ms: int = 0

    # Labels of failed steps, best-effort ones included
    failures: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class RunHistory:
    """Append-only NDJSON writer/reader for run history."""

    def __init__(self, directory: Path):
        self._path = directory / DEFAULT_HISTORY_FILE

    @property
    def path(self) -> Path:
        return self._path

    def append(self, entry: RunHistoryEntry) -> None:
        """Append one entry. Write errors are logged, not raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("History entry written: %s", entry.run_id)
        except OSError as e:
            logger.error("Failed to write run history: %s", e)

    def read_all(self) -> list[RunHistoryEntry]:
        """All entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(RunHistoryEntry.model_validate(json.loads(line)))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping corrupt history entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read run history: %s", e)

        return entries

    def read_recent(self, n: int = 10) -> list[RunHistoryEntry]:
        return self.read_all()[-n:]
