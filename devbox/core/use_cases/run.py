"""
Run use case — provision the workstation from a profile.

This is the top-level orchestrator: it loads the profile, binds every
step to the adapter registry, runs them in order, and persists what
happened. The full vertical slice from ``devbox run`` to recorded state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from devbox.adapters.registry import AdapterRegistry, default_registry
from devbox.core.config.loader import ConfigError, load_profile
from devbox.core.engine.environment import Environment
from devbox.core.engine.planner import build_steps
from devbox.core.engine.runner import RunReport, Runner, generate_run_id
from devbox.core.models.outcome import InstallStatus
from devbox.core.models.profile import Profile
from devbox.core.persistence.history import RunHistory, RunHistoryEntry
from devbox.core.persistence.state_file import default_state_path, load_state, save_state, state_dir

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of a provisioning run."""

    report: RunReport | None = None
    profile: Profile | None = None
    unknown_skips: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error:
            return 2
        return self.report.exit_code if self.report else 1

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["profile"] = self.profile.name if self.profile else ""
        if self.unknown_skips:
            result["unknown_skips"] = self.unknown_skips
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def run_profile(
    profile_ref: str | None = None,
    skip: list[str] | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    env: Environment | None = None,
    state_directory: Path | None = None,
) -> RunResult:
    """Provision every step of a profile.

    Args:
        profile_ref: Bundled profile name or path. None = auto-detect.
        skip: Step labels to record as skipped without probing.
        dry_run: Probe only; nothing is installed and nothing persisted.
        mock_mode: Route every step to the mock adapter.
        registry: Optional pre-configured adapter registry.
        env: Optional starting environment (default: os.environ).
        state_directory: Where state and history go (default: DEVBOX_STATE_DIR).

    Returns:
        RunResult with the run report.
    """
    result = RunResult()

    try:
        profile = load_profile(profile_ref)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.profile = profile

    if registry is None:
        registry = default_registry(mock_mode=mock_mode)
    elif mock_mode and not registry.mock_mode:
        registry.set_mock_mode(True)

    runner = Runner(build_steps(profile, registry), skip=skip or (), dry_run=dry_run)
    result.unknown_skips = runner.unknown_skips()
    for label in result.unknown_skips:
        logger.warning("Skip label '%s' matches no step", label)

    run_id = generate_run_id()
    logger.info("Run %s: profile '%s', %d steps", run_id, profile.name, len(runner.steps))
    report = runner.run(env if env is not None else Environment(), run_id=run_id, profile=profile.name)
    result.report = report

    if not dry_run:
        persist_run(report, state_directory or state_dir())

    return result


def persist_run(report: RunReport, directory: Path) -> None:
    """Record a finished run in current.json and history.ndjson."""
    state_path = default_state_path(directory)
    state = load_state(state_path)

    record = state.last_run
    record.run_id = report.run_id
    record.profile = report.profile
    record.started_at = report.started_at
    record.ended_at = report.ended_at
    record.status = report.state.value
    record.halted_at = report.halted_at
    record.cause = report.cause or None
    record.steps_total = report.total
    record.steps_changed = report.changed
    record.steps_failed = report.failed

    for outcome in report.outcomes:
        if outcome.result.status is InstallStatus.SKIPPED:
            continue
        previous = state.steps.get(outcome.label)
        failures = previous.failure_count if previous else 0
        updates: dict = {
            "resource": outcome.resource,
            "last_status": outcome.result.status.value,
            "last_run_at": outcome.result.recorded_at,
            "failure_count": failures + 1 if outcome.result.failed else 0,
        }
        if outcome.result.changed:
            updates["last_changed_at"] = outcome.result.recorded_at
        state.set_step_state(outcome.label, **updates)

    try:
        save_state(state, state_path)
    except OSError as e:
        logger.error("Run state not saved: %s", e)

    RunHistory(directory).append(
        RunHistoryEntry(
            run_id=report.run_id,
            profile=report.profile,
            status=report.state.value,
            halted_at=report.halted_at,
            cause=report.cause,
            steps_total=report.total,
            steps_changed=report.changed,
            steps_failed=report.failed,
            duration_ms=_duration_ms(report),
            failures=[o.label for o in report.outcomes if o.result.failed],
            skipped=[o.label for o in report.outcomes if o.result.status is InstallStatus.SKIPPED],
        )
    )


def _duration_ms(report: RunReport) -> int:
    try:
        start = datetime.fromisoformat(report.started_at)
        end = datetime.fromisoformat(report.ended_at)
    except ValueError:
        return 0
    return int((end - start).total_seconds() * 1000)
