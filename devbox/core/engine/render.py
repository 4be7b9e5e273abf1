"""
Report rendering — the end-of-run summary.

Pure functions over a RunReport. Nothing here prints or logs; the CLI
decides where the lines go.
"""

from __future__ import annotations

from devbox.core.engine.runner import RunReport, RunState, StepOutcome


def render_step(outcome: StepOutcome) -> str:
    """One line per step: marker, position, label, classification."""
    suffix = " [best-effort]" if outcome.best_effort and outcome.result.failed else ""
    return f"{outcome.marker} {outcome.index:>2}. {outcome.label}: {outcome.result.describe()}{suffix}"


def render_status(report: RunReport) -> str:
    """The final status line."""
    if report.state is RunState.HALTED:
        return f"Halted at step {report.halted_at}: {report.cause}"
    if report.state is RunState.COMPLETED:
        return "Completed"
    return report.state.value.capitalize()


def render_report(report: RunReport, *, show_diagnostics: bool = False) -> list[str]:
    """All summary lines, ending with the status line.

    Args:
        report: The run to render.
        show_diagnostics: Include captured installer output under
            failed steps.
    """
    lines = []
    for outcome in report.outcomes:
        lines.append(render_step(outcome))
        if show_diagnostics and outcome.result.failed and outcome.result.diagnostic:
            for diag_line in outcome.result.diagnostic.splitlines():
                lines.append(f"      {diag_line}")
    lines.append(render_status(report))
    return lines
