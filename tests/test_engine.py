"""
Tests for the engine — Step evaluation, Runner state machine, rendering
and planning.
"""

from pathlib import Path

from devbox.adapters.mock import MockAdapter
from devbox.adapters.registry import AdapterRegistry
from devbox.core.engine.environment import Environment
from devbox.core.engine.planner import build_steps
from devbox.core.engine.render import render_report, render_status
from devbox.core.engine.runner import Runner, RunReport, RunState
from devbox.core.engine.step import Step
from devbox.core.errors import DependencyMissing, InstallFailed, ProbeIndeterminate
from devbox.core.models.environment import EnvDelta
from devbox.core.models.outcome import InstallResult, InstallStatus, PresenceResult
from devbox.core.models.profile import StepDecl
from devbox.core.models.resource import Resource, ResourceKind

# ── Helpers ──────────────────────────────────────────────────────────


def _resource(name: str, adapter: str = "mock") -> Resource:
    return Resource(name=name, kind=ResourceKind.PACKAGE, adapter=adapter)


class _Tracker:
    """Records every probe and install call, in order."""

    def __init__(self):
        self.calls: list[str] = []

    def step(
        self,
        label: str,
        present: bool = False,
        install: InstallResult | Exception | None = None,
        best_effort: bool = False,
        **kwargs,
    ) -> Step:
        def probe(env: Environment) -> PresenceResult:
            self.calls.append(f"probe:{label}")
            return PresenceResult.PRESENT if present else PresenceResult.ABSENT

        def act(env: Environment) -> InstallResult:
            self.calls.append(f"install:{label}")
            if isinstance(install, Exception):
                raise install
            return install or InstallResult.installed()

        return Step(
            label=label,
            resource=_resource(label),
            probe=probe,
            install=act,
            best_effort=best_effort,
            **kwargs,
        )


def _mock_steps(mock: MockAdapter, *names: str, best_effort: tuple[str, ...] = ()) -> list[Step]:
    registry = AdapterRegistry(mock_mode=True, mock_adapter=mock)
    decls = [
        StepDecl(label=name, resource=_resource(name), best_effort=name in best_effort)
        for name in names
    ]
    return build_steps(decls, registry)


# ── Step Tests ───────────────────────────────────────────────────────


class TestStep:
    def test_present_skips_install(self, env):
        tracker = _Tracker()
        result = tracker.step("git", present=True).evaluate(env)
        assert result.status is InstallStatus.ALREADY_PRESENT
        assert tracker.calls == ["probe:git"]

    def test_absent_installs(self, env):
        tracker = _Tracker()
        result = tracker.step("uv").evaluate(env)
        assert result.status is InstallStatus.INSTALLED
        assert tracker.calls == ["probe:uv", "install:uv"]

    def test_probe_exception_reads_as_absent(self, env):
        def broken(env):
            raise ProbeIndeterminate("cannot tell")

        installs = []
        step = Step(
            label="x",
            resource=_resource("x"),
            probe=broken,
            install=lambda e: installs.append("x") or InstallResult.installed(),
        )
        assert step.check(env) is PresenceResult.ABSENT
        assert step.evaluate(env).status is InstallStatus.INSTALLED
        assert installs == ["x"]

    def test_probe_unexpected_exception_reads_as_absent(self, env):
        step = Step(
            label="x",
            resource=_resource("x"),
            probe=lambda e: 1 / 0,
            install=lambda e: InstallResult.installed(),
        )
        assert step.check(env) is PresenceResult.ABSENT

    def test_install_failed_exception_becomes_result(self, env):
        tracker = _Tracker()
        err = InstallFailed("boom", code=100, diagnostic="E: broken")
        result = tracker.step("pkg", install=err).evaluate(env)
        assert result.failed
        assert result.exit_code == 100
        assert result.diagnostic == "E: broken"
        assert result.error_kind == "install_failed"

    def test_dependency_missing_keeps_error_kind(self, env):
        tracker = _Tracker()
        result = tracker.step("ext", install=DependencyMissing("code")).evaluate(env)
        assert result.failed
        assert result.error_kind == "dependency_missing"
        assert "'code' not found on PATH" in result.reason

    def test_unexpected_exception_becomes_failed(self, env):
        tracker = _Tracker()
        result = tracker.step("pkg", install=RuntimeError("kaboom")).evaluate(env)
        assert result.failed
        assert "kaboom" in result.reason

    def test_upgrade_called_when_present(self, env):
        upgrades = []
        step = Step(
            label="gcloud",
            resource=_resource("gcloud"),
            probe=lambda e: PresenceResult.PRESENT,
            install=lambda e: InstallResult.installed(),
            upgrade=lambda e: upgrades.append(1) or InstallResult.upgraded(),
        )
        assert step.evaluate(env).status is InstallStatus.UPGRADED
        assert upgrades == [1]

    def test_environment_changes_exports_then_activation(self, env):
        step = Step(
            label="node",
            resource=_resource("node"),
            probe=lambda e: PresenceResult.PRESENT,
            install=lambda e: InstallResult.installed(),
            exports=(EnvDelta(var="FNM_DIR", value="/fnm"),),
            activate=lambda e: [EnvDelta.prepend_path("/fnm/bin")],
        )
        deltas = step.environment_changes(env)
        assert [d.var for d in deltas] == ["FNM_DIR", "PATH"]

    def test_activation_failure_is_not_fatal(self, env):
        def broken(env):
            raise RuntimeError("no fnm")

        step = Step(
            label="node",
            resource=_resource("node"),
            probe=lambda e: PresenceResult.PRESENT,
            install=lambda e: InstallResult.installed(),
            exports=(EnvDelta(var="A", value="1"),),
            activate=broken,
        )
        assert [d.var for d in step.environment_changes(env)] == ["A"]


# ── Runner Tests ─────────────────────────────────────────────────────


class TestRunner:
    def test_scenario_halts_at_failing_step(self, env):
        """Present, absent+installs, absent+fails (not best-effort)."""
        tracker = _Tracker()
        steps = [
            tracker.step("A", present=True),
            tracker.step("B"),
            tracker.step("C", install=InstallResult.failure("install exploded", exit_code=1)),
        ]
        report = Runner(steps).run(env)

        assert [o.result.status for o in report.outcomes] == [
            InstallStatus.ALREADY_PRESENT,
            InstallStatus.INSTALLED,
            InstallStatus.FAILED,
        ]
        assert report.state is RunState.HALTED
        assert report.halted_at == 3
        assert render_status(report).startswith("Halted at step 3")
        assert report.exit_code != 0

    def test_scenario_best_effort_completes(self, env):
        tracker = _Tracker()
        steps = [
            tracker.step("A", present=True),
            tracker.step("B"),
            tracker.step(
                "C",
                install=InstallResult.failure("install exploded", exit_code=1),
                best_effort=True,
            ),
        ]
        report = Runner(steps).run(env)

        assert [o.result.status for o in report.outcomes] == [
            InstallStatus.ALREADY_PRESENT,
            InstallStatus.INSTALLED,
            InstallStatus.FAILED,
        ]
        assert report.state is RunState.COMPLETED
        assert render_status(report) == "Completed"
        assert report.exit_code == 0

    def test_fail_stop_invokes_nothing_after_halt(self, env):
        tracker = _Tracker()
        steps = [
            tracker.step("A"),
            tracker.step("B", install=InstallResult.failure("nope")),
            tracker.step("C"),
            tracker.step("D", present=True),
        ]
        report = Runner(steps).run(env)

        assert report.halted_at == 2
        assert report.total == 2
        assert not any(c.endswith(":C") or c.endswith(":D") for c in tracker.calls)

    def test_best_effort_failure_does_not_affect_later_steps(self, env):
        tracker = _Tracker()
        steps = [
            tracker.step("ext", install=InstallResult.failure("marketplace down"), best_effort=True),
            tracker.step("tool"),
        ]
        report = Runner(steps).run(env)

        assert report.completed
        assert report.outcomes[1].result.status is InstallStatus.INSTALLED
        assert report.failed == 1

    def test_declaration_order_is_kept(self, env):
        tracker = _Tracker()
        steps = [tracker.step(label, present=True) for label in ("z", "a", "m")]
        report = Runner(steps).run(env)
        assert [o.label for o in report.outcomes] == ["z", "a", "m"]
        assert [o.index for o in report.outcomes] == [1, 2, 3]

    def test_idempotent_over_two_runs(self, env):
        mock = MockAdapter()
        steps = _mock_steps(mock, "git", "uv", "ruff")

        first = Runner(steps).run(env)
        assert first.completed
        assert first.changed == 3

        second = Runner(steps).run(env)
        assert second.completed
        assert second.changed == 0
        assert all(o.result.status is InstallStatus.ALREADY_PRESENT for o in second.outcomes)
        assert mock.call_count == 3

    def test_each_run_gets_a_fresh_report(self, env):
        tracker = _Tracker()
        runner = Runner([tracker.step("A", present=True)])
        first = runner.run(env)
        second = runner.run(env)
        assert first is not second
        assert first.run_id != second.run_id
        assert second.total == 1

    def test_fail_open_probe_leads_to_install(self, env):
        mock = MockAdapter()
        mock.set_broken_probe("gcloud")
        report = Runner(_mock_steps(mock, "gcloud")).run(env)
        assert report.outcomes[0].result.status is InstallStatus.INSTALLED
        assert mock.install_log == ["gcloud"]

    def test_skip_list_records_skipped_without_probing(self, env):
        tracker = _Tracker()
        steps = [tracker.step("A"), tracker.step("B"), tracker.step("C")]
        report = Runner(steps, skip=["B"]).run(env)

        assert report.completed
        assert report.outcomes[1].result.status is InstallStatus.SKIPPED
        assert "probe:B" not in tracker.calls
        assert "install:B" not in tracker.calls

    def test_unknown_skips(self):
        tracker = _Tracker()
        runner = Runner([tracker.step("A")], skip=["A", "nope"])
        assert runner.unknown_skips() == ["nope"]

    def test_dry_run_probes_but_never_installs(self, env):
        tracker = _Tracker()
        steps = [tracker.step("A", present=True), tracker.step("B")]
        report = Runner(steps, dry_run=True).run(env)

        assert report.completed
        assert report.dry_run
        assert report.outcomes[0].result.status is InstallStatus.ALREADY_PRESENT
        assert report.outcomes[1].result.status is InstallStatus.SKIPPED
        assert report.outcomes[1].result.reason == "would install"
        assert tracker.calls == ["probe:A", "probe:B"]

    def test_later_step_sees_earlier_exports(self, env):
        seen = []

        def probe_uv(env: Environment) -> PresenceResult:
            seen.append(env.path_entries()[0])
            return PresenceResult.PRESENT

        steps = [
            Step(
                label="bashrc",
                resource=_resource("bashrc"),
                probe=lambda e: PresenceResult.PRESENT,
                install=lambda e: InstallResult.installed(),
                exports=(EnvDelta.prepend_path("~/.local/bin"),),
            ),
            Step(
                label="uv",
                resource=_resource("uv"),
                probe=probe_uv,
                install=lambda e: InstallResult.installed(),
            ),
        ]
        Runner(steps).run(env)
        assert seen == [f"{env.home}/.local/bin"]

    def test_failed_step_exports_are_not_applied(self, env):
        steps = [
            Step(
                label="fnm",
                resource=_resource("fnm"),
                probe=lambda e: PresenceResult.ABSENT,
                install=lambda e: InstallResult.failure("download failed"),
                best_effort=True,
                exports=(EnvDelta(var="FNM_DIR", value="/nowhere"),),
            ),
        ]
        Runner(steps).run(env)
        assert env.get("FNM_DIR") is None

    def test_activation_deltas_from_mock(self, env):
        mock = MockAdapter()
        mock.set_activation("node", [EnvDelta.prepend_path("/node/bin")])
        Runner(_mock_steps(mock, "node")).run(env)
        assert env.path_entries()[0] == "/node/bin"

    def test_halt_cause_names_step_and_reason(self, env):
        tracker = _Tracker()
        steps = [tracker.step("npm:gemini", install=InstallResult.failure("EACCES"))]
        report = Runner(steps).run(env)
        assert report.cause == "npm:gemini: EACCES"

    def test_to_dict(self, env):
        tracker = _Tracker()
        report = Runner([tracker.step("A"), tracker.step("B", present=True)]).run(env, profile="wsl")
        data = report.to_dict()
        assert data["state"] == "completed"
        assert data["profile"] == "wsl"
        assert data["changed"] == 1
        assert data["already_present"] == 1
        assert data["steps"][0]["label"] == "A"
        assert data["steps"][0]["status"] == "installed"
        assert data["steps"][0]["resource"] == "mock:A"

    def test_empty_runner_completes(self, env):
        report = Runner([]).run(env)
        assert report.completed
        assert report.total == 0


# ── Render Tests ─────────────────────────────────────────────────────


class TestRender:
    def test_lines_per_step_plus_status(self, env):
        tracker = _Tracker()
        steps = [
            tracker.step("git", present=True),
            tracker.step("uv"),
            tracker.step("ext", install=InstallResult.failure("offline", exit_code=1), best_effort=True),
        ]
        lines = render_report(Runner(steps).run(env))

        assert len(lines) == 4
        assert lines[0] == "✓  1. git: already present"
        assert lines[1] == "✓  2. uv: installed"
        assert lines[2] == "✗  3. ext: failed (exit 1): offline [best-effort]"
        assert lines[3] == "Completed"

    def test_skipped_marker(self, env):
        tracker = _Tracker()
        lines = render_report(Runner([tracker.step("x")], skip=["x"]).run(env))
        assert lines[0] == "⊘  1. x: skipped (skip list)"

    def test_diagnostics_shown_on_request(self, env):
        tracker = _Tracker()
        failure = InstallResult.failure("apt failed", exit_code=100, diagnostic="E: line one\nE: line two")
        report = Runner([tracker.step("pkg", install=failure)]).run(env)

        plain = render_report(report)
        detailed = render_report(report, show_diagnostics=True)
        assert len(detailed) == len(plain) + 2
        assert detailed[-1] == "Halted at step 1: pkg: apt failed"

    def test_pending_report(self):
        assert render_status(RunReport()) == "Pending"


# ── Planner Tests ────────────────────────────────────────────────────


class TestPlanner:
    def test_upgrade_bound_only_when_requested(self):
        registry = AdapterRegistry(mock_mode=True)
        decls = [
            StepDecl(label="a", resource=_resource("a")),
            StepDecl(label="b", resource=_resource("b"), upgrade=True),
        ]
        steps = build_steps(decls, registry)
        assert steps[0].upgrade is None
        assert steps[1].upgrade is not None

    def test_exports_and_flags_carried(self):
        registry = AdapterRegistry(mock_mode=True)
        decl = StepDecl(
            label="fnm",
            resource=_resource("fnm"),
            best_effort=True,
            exports=[EnvDelta(var="FNM_DIR", value="/x")],
        )
        (step,) = build_steps([decl], registry)
        assert step.best_effort
        assert step.exports == (EnvDelta(var="FNM_DIR", value="/x"),)
        assert step.label == "fnm"


# ── Environment Tests ────────────────────────────────────────────────


class TestEnvironment:
    def test_base_is_copied(self):
        base = {"PATH": "/usr/bin", "HOME": "/home/u"}
        env = Environment(base)
        env.apply(EnvDelta(var="X", value="1"))
        assert "X" not in base
        assert env.get("X") == "1"

    def test_prepend_dedupes(self):
        env = Environment({"PATH": "/a:/b", "HOME": "/h"})
        env.apply(EnvDelta.prepend_path("/b"))
        assert env.path_entries() == ["/b", "/a"]

    def test_append(self):
        env = Environment({"PATH": "/a", "HOME": "/h"})
        env.apply(EnvDelta(var="PATH", value="/z", mode="append"))
        assert env.path_entries() == ["/a", "/z"]

    def test_expand_home_and_vars(self):
        env = Environment({"HOME": "/home/u", "TOOLING": "/t"})
        assert env.expand("~/x") == "/home/u/x"
        assert env.expand("$TOOLING/bin") == "/t/bin"
        assert env.expand("${TOOLING}/bin") == "/t/bin"
        assert env.expand("$MISSING/bin") == "/bin"

    def test_deltas_see_previous_deltas(self):
        env = Environment({"HOME": "/home/u", "PATH": ""})
        env.apply_all([
            EnvDelta(var="TOOLING", value="$HOME/tools"),
            EnvDelta(var="FNM_DIR", value="$TOOLING/node"),
        ])
        assert env.get("FNM_DIR") == "/home/u/tools/node"
        assert len(env.deltas) == 2

    def test_which_uses_run_path(self, env, fake_tool, bin_dir: Path):
        assert env.which("uv") is None
        fake_tool("uv")
        assert env.which("uv") == str(bin_dir / "uv")
