"""
Runner — executes steps in order with fail-stop semantics.

The runner is the heartbeat of a provisioning run. It walks the steps
in declaration order, evaluates each one against the run environment,
records the outcome, and stops at the first failure of a step that is
not best-effort.

State machine:
    pending → running(i) → halted(i, cause) | completed

Flow per step:
    skip list? → evaluate (probe → act) → record → apply env deltas → next
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from devbox.core.engine.environment import Environment
from devbox.core.engine.step import Step
from devbox.core.models.outcome import InstallResult, InstallStatus, PresenceResult

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    HALTED = "halted"
    COMPLETED = "completed"


@dataclass(frozen=True)
class StepOutcome:
    """One report entry: which step ran and what came of it."""

    index: int                 # 1-based position in the run
    label: str
    best_effort: bool
    result: InstallResult
    resource: str = ""         # adapter:name

    @property
    def marker(self) -> str:
        if self.result.failed:
            return "✗"
        if self.result.status is InstallStatus.SKIPPED:
            return "⊘"
        return "✓"

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "label": self.label,
            "best_effort": self.best_effort,
            "resource": self.resource,
            **self.result.model_dump(mode="json"),
        }


@dataclass
class RunReport:
    """Append-only record of one run."""

    run_id: str = ""
    profile: str = ""
    dry_run: bool = False
    state: RunState = RunState.PENDING
    halted_at: int | None = None
    cause: str = ""
    started_at: str = ""
    ended_at: str = ""
    outcomes: list[StepOutcome] = field(default_factory=list)

    def record(self, outcome: StepOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def count(self, status: InstallStatus) -> int:
        return sum(1 for o in self.outcomes if o.result.status is status)

    @property
    def changed(self) -> int:
        return sum(1 for o in self.outcomes if o.result.changed)

    @property
    def failed(self) -> int:
        return self.count(InstallStatus.FAILED)

    @property
    def completed(self) -> bool:
        return self.state is RunState.COMPLETED

    @property
    def exit_code(self) -> int:
        return 0 if self.completed else 1

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "profile": self.profile,
            "dry_run": self.dry_run,
            "state": self.state.value,
            "halted_at": self.halted_at,
            "cause": self.cause,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "total": self.total,
            "changed": self.changed,
            "already_present": self.count(InstallStatus.ALREADY_PRESENT),
            "skipped": self.count(InstallStatus.SKIPPED),
            "failed": self.failed,
            "steps": [o.to_dict() for o in self.outcomes],
        }


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"


class Runner:
    """Sequential fail-stop executor for a fixed list of steps.

    Args:
        steps: The steps, in the order they must run. Never reordered.
        skip: Labels to record as skipped without probing.
        dry_run: Probe every step but never install; absent resources
            are recorded as skipped.
    """

    def __init__(
        self,
        steps: Sequence[Step],
        skip: Iterable[str] = (),
        dry_run: bool = False,
    ):
        self._steps = tuple(steps)
        self._skip = frozenset(skip)
        self._dry_run = dry_run

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._steps

    def unknown_skips(self) -> list[str]:
        """Skip labels that match no step."""
        labels = {s.label for s in self._steps}
        return sorted(self._skip - labels)

    def run(
        self,
        env: Environment | None = None,
        run_id: str = "",
        profile: str = "",
    ) -> RunReport:
        """Run every step once and return a fresh report."""
        env = env if env is not None else Environment()
        report = RunReport(
            run_id=run_id or generate_run_id(),
            profile=profile,
            dry_run=self._dry_run,
            started_at=datetime.now(UTC).isoformat(),
        )

        report.state = RunState.RUNNING
        for index, step in enumerate(self._steps, start=1):
            if step.label in self._skip:
                self._record(report, index, step, InstallResult.skipped(reason="skip list"))
                continue

            result = self._evaluate(step, env)
            self._record(report, index, step, result)

            if result.failed:
                if not step.best_effort:
                    report.state = RunState.HALTED
                    report.halted_at = index
                    report.cause = f"{step.label}: {result.reason}" if result.reason else step.label
                    logger.error("Halted at step %d: %s", index, report.cause)
                    break
                continue

            env.apply_all(step.environment_changes(env))
        else:
            report.state = RunState.COMPLETED

        report.ended_at = datetime.now(UTC).isoformat()
        return report

    def _evaluate(self, step: Step, env: Environment) -> InstallResult:
        if self._dry_run:
            if step.check(env) is PresenceResult.PRESENT:
                return InstallResult.already_present()
            return InstallResult.skipped(reason="would install")
        return step.evaluate(env)

    def _record(self, report: RunReport, index: int, step: Step, result: InstallResult) -> None:
        outcome = StepOutcome(index, step.label, step.best_effort, result, step.resource.ref)
        report.record(outcome)
        level = logging.WARNING if result.failed else logging.INFO
        logger.log(
            level,
            "%s [%d/%d] %s → %s",
            outcome.marker,
            index,
            len(self._steps),
            step.label,
            result.describe(),
        )
