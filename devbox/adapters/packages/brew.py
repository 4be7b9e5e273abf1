"""
Homebrew adapter — macOS formulae and casks.
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

ALREADY_MARKERS = (
    "already installed",
    "already up-to-date",
    "already up to date",
)


class BrewAdapter(Adapter):
    """Formulae and casks through ``brew``.

    Resource params:
        cask (bool): Install as a cask (GUI applications, SDKs).
        timeout (int): Timeout in seconds (default: 1800).
    """

    kinds = frozenset({ResourceKind.PACKAGE})

    @property
    def name(self) -> str:
        return "brew"

    def is_available(self, env: Environment) -> bool:
        return env.which("brew") is not None

    def _type_flag(self, resource: Resource) -> list[str]:
        return ["--cask"] if resource.param("cask") else ["--formula"]

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        if not env.which("brew"):
            raise ProbeIndeterminate("brew not on PATH")
        result = run_command(
            ["brew", "list", *self._type_flag(resource), resource.name],
            env,
            timeout=60,
        )
        return PresenceResult.PRESENT if result.ok else PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        if not env.which("brew"):
            raise DependencyMissing("brew", "install Homebrew first")
        cmd = ["brew", "install"]
        if resource.param("cask"):
            cmd.append("--cask")
        result = run_command(
            [*cmd, resource.name],
            env,
            timeout=resource.param("timeout", 1800),
        )
        return classify(result, already_markers=ALREADY_MARKERS)

    def upgrade(self, resource: Resource, env: Environment) -> InstallResult:
        if not env.which("brew"):
            raise DependencyMissing("brew", "install Homebrew first")
        cmd = ["brew", "upgrade"]
        if resource.param("cask"):
            cmd.append("--cask")
        result = run_command(
            [*cmd, resource.name],
            env,
            timeout=resource.param("timeout", 1800),
        )
        return classify(result, already_markers=ALREADY_MARKERS, upgrade=True)
