"""
devbox — CLI entrypoint.

Usage:
    python -m devbox.main --help
    devbox run
    devbox run --skip "vscode:hashicorp.terraform" --dry-run
    devbox config check
"""

from __future__ import annotations

import json
import sys

import click

from devbox import __version__
from devbox.core.observability.logging_config import resolve_level, setup_logging

_MARKER_COLORS = {"✓": "green", "✗": "red", "⊘": "yellow"}


@click.group()
@click.version_option(version=__version__, prog_name="devbox")
@click.option("--verbose", "-v", is_flag=True, help="Log each step decision.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (every spawned command).")
@click.option(
    "--profile",
    "-p",
    "profile_ref",
    default=None,
    help="Profile name (wsl, macos, windows) or path to a profile YAML "
    "(default: DEVBOX_PROFILE, else detected from the platform).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    profile_ref: str | None,
) -> None:
    """devbox — provision a developer workstation, idempotently."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["profile_ref"] = profile_ref

    setup_logging(level=resolve_level(debug=debug, verbose=verbose, quiet=quiet))


@cli.command()
@click.option(
    "--skip",
    "skip",
    multiple=True,
    metavar="LABEL",
    help="Step label to skip (repeatable).",
)
@click.option("--dry-run", is_flag=True, help="Probe every step but install nothing.")
@click.option("--mock", is_flag=True, help="Use mock adapter (no real execution).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    skip: tuple[str, ...],
    dry_run: bool,
    mock: bool,
    as_json: bool,
) -> None:
    """Provision every step of the profile, in order.

    Stops at the first failure of a step that isn't best-effort.

    Examples:

        devbox run

        devbox run --skip "uv tools: jupyterlab"

        devbox -p macos run --dry-run
    """
    from devbox.core.engine.render import render_report, render_status
    from devbox.core.use_cases.run import run_profile

    result = run_profile(
        profile_ref=ctx.obj.get("profile_ref"),
        skip=list(skip),
        dry_run=dry_run,
        mock_mode=mock,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(result.exit_code)

    report = result.report
    profile = result.profile
    assert report is not None and profile is not None
    quiet = ctx.obj.get("quiet", False)

    for label in result.unknown_skips:
        click.secho(f"⚠️  --skip '{label}' matches no step", fg="yellow")

    if not quiet:
        mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
        click.secho(f"\n⚡ {mode_label}{profile.name}", fg="cyan", bold=True)
        if profile.description:
            click.echo(f"   {profile.description}")
        click.echo()

    lines = render_report(report, show_diagnostics=ctx.obj.get("verbose", False))
    for line in lines[:-1]:
        if quiet and line.startswith("✓"):
            continue
        click.secho(f"   {line}", fg=_MARKER_COLORS.get(line[:1]))

    click.echo()
    status_line = render_status(report)
    click.secho(status_line, fg="green" if report.completed else "red", bold=True)
    if not quiet:
        click.echo(
            f"   {report.changed} changed, {report.failed} failed, {report.total} of "
            f"{len(profile.step_decls())} steps evaluated"
        )

    if report.completed and not dry_run and not quiet and profile.next_steps:
        click.echo()
        click.secho("Next steps:", bold=True)
        for i, step in enumerate(profile.next_steps, start=1):
            click.echo(f"   {i}. {step}")

    click.echo()
    sys.exit(result.exit_code)


@cli.command()
@click.option("--mock", is_flag=True, help="Use mock adapter (no real probing).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, mock: bool, as_json: bool) -> None:
    """Probe every step without installing anything.

    Exits 1 when anything is missing.
    """
    from devbox.core.use_cases.check import check_profile

    result = check_profile(profile_ref=ctx.obj.get("profile_ref"), mock_mode=mock)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(result.exit_code)

    assert result.profile is not None
    click.secho(f"\n🔍 {result.profile.name}", fg="cyan", bold=True)
    click.echo()
    for entry in result.entries:
        if entry.presence.value == "present":
            click.secho(f"   ✓ {entry.label}", fg="green")
        else:
            click.secho(f"   ✗ {entry.label}", fg="red", nl=False)
            click.echo(" (missing)")

    click.echo()
    click.echo(f"   {result.present}/{len(result.entries)} present")
    click.echo()
    sys.exit(result.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--history", "history", default=5, type=int, help="History entries to show.")
def status(as_json: bool, history: int) -> None:
    """Show the last recorded run."""
    from devbox.core.use_cases.status import get_status

    result = get_status(history=history)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not result.has_run:
        click.echo("No runs recorded yet. Run 'devbox run' to provision this machine.")
        return

    assert result.state is not None
    last = result.state.last_run
    status_color = {"completed": "green", "halted": "red"}.get(last.status, "white")

    click.secho(f"\n📋 Last run: {last.profile}", fg="cyan", bold=True)
    click.echo(f"   {last.run_id} at {last.ended_at}")
    click.echo("   Result: ", nl=False)
    click.secho(last.status, fg=status_color)
    if last.halted_at:
        click.echo(f"   Halted at step {last.halted_at}: {last.cause}")
    click.echo(
        f"   {last.steps_changed} changed, {last.steps_failed} failed, "
        f"{last.steps_total} steps"
    )

    failing = [s for s in result.state.steps.values() if s.last_status == "failed"]
    if failing:
        click.echo()
        click.secho("   Failing steps:", fg="red", bold=True)
        for s in failing:
            click.echo(f"     • {s.label} (failed {s.failure_count}x)")

    if len(result.history) > 1:
        click.echo()
        click.secho("   History:", fg="white", bold=True)
        for entry in reversed(result.history):
            click.echo(f"     {entry.timestamp}  {entry.status:<9}  {entry.profile}")

    click.echo()


@cli.command()
def profiles() -> None:
    """List the bundled profiles."""
    from devbox.core.config.loader import detect_profile, list_profiles

    default = detect_profile()
    for name in list_profiles():
        marker = " ← default" if name == default else ""
        click.echo(f"  {name}{marker}")


@cli.group()
def config() -> None:
    """Profile configuration commands."""


@config.command("check")
@click.option("--skip", "skip", multiple=True, metavar="LABEL", help="Check a skip label too.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, skip: tuple[str, ...], as_json: bool) -> None:
    """Validate a profile."""
    from devbox.core.use_cases.config_check import check_config

    result = check_config(profile_ref=ctx.obj.get("profile_ref"), skip=list(skip))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 2)

    if result.valid:
        assert result.profile is not None
        click.secho("✅ Profile is valid", fg="green", bold=True)
        click.echo(f"   Profile: {result.profile.name}")
        click.echo(f"   Steps: {len(result.profile.step_decls())}")
    else:
        click.secho("❌ Profile errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    click.echo()
    if not result.valid:
        sys.exit(2)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def adapters(as_json: bool) -> None:
    """Show which package managers and tools are available."""
    from devbox.adapters.registry import default_registry
    from devbox.core.engine.environment import Environment

    status_map = default_registry().adapter_status(Environment())

    if as_json:
        click.echo(json.dumps(status_map, indent=2))
        return

    click.echo()
    for name, info in status_map.items():
        if info["available"]:
            click.secho(f"   ✓ {name}", fg="green", nl=False)
        else:
            click.secho(f"   ✗ {name}", fg="red", nl=False)
        click.echo(f"  ({', '.join(info['kinds'])})")
    click.echo()


if __name__ == "__main__":
    cli()
