"""
VS Code adapter — editor extensions through the ``code`` CLI.

Inside WSL the ``code`` command only exists when the terminal runs in
a VS Code Remote-WSL session; on macOS it has to be added to PATH from
the command palette. When it's missing, extension steps fail with a
dependency error (profiles mark them best-effort).
"""

from __future__ import annotations

import logging

from devbox.adapters.base import Adapter
from devbox.adapters.shell.command import classify, run_command
from devbox.core.engine.environment import Environment
from devbox.core.errors import DependencyMissing, ProbeIndeterminate
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource, ResourceKind

logger = logging.getLogger(__name__)

ALREADY_MARKERS = ("is already installed",)

_MISSING_HINT = (
    "open VS Code and run \"Shell Command: Install 'code' command in PATH\", "
    "or run from a Remote-WSL terminal"
)


def parse_extensions(output: str) -> set[str]:
    """Extension ids from ``code --list-extensions``, lowercased."""
    return {line.strip().lower() for line in output.splitlines() if line.strip()}


class VSCodeAdapter(Adapter):
    """Editor extensions by marketplace id (``publisher.name``).

    Resource params:
        cli (str): Editor CLI (default: 'code'; e.g. 'code-insiders').
    """

    kinds = frozenset({ResourceKind.EXTENSION})

    @property
    def name(self) -> str:
        return "vscode"

    def is_available(self, env: Environment) -> bool:
        return env.which("code") is not None

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        cli = resource.param("cli", "code")
        if not env.which(cli):
            raise ProbeIndeterminate(f"{cli} not on PATH")
        result = run_command([cli, "--list-extensions"], env, timeout=120)
        if not result.ok:
            raise ProbeIndeterminate(f"{cli} --list-extensions failed: {result.diagnostic}")
        if resource.name.lower() in parse_extensions(result.stdout):
            return PresenceResult.PRESENT
        return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        cli = resource.param("cli", "code")
        if not env.which(cli):
            raise DependencyMissing(cli, _MISSING_HINT)
        result = run_command([cli, "--install-extension", resource.name], env, timeout=300)
        return classify(result, already_markers=ALREADY_MARKERS)

    def upgrade(self, resource: Resource, env: Environment) -> InstallResult:
        cli = resource.param("cli", "code")
        if not env.which(cli):
            raise DependencyMissing(cli, _MISSING_HINT)
        result = run_command(
            [cli, "--install-extension", resource.name, "--force"],
            env,
            timeout=300,
        )
        return classify(result, upgrade=True)
