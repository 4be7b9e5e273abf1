"""
uv tool adapter — global Python CLIs installed with ``uv tool``.

Tools land in ``~/.local/bin``; that directory must be on PATH (the
profile exports it) for later steps to find them.
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
UP_TO_DATE_MARKERS = ("Nothing to upgrade",)

_OPERATORS = ("==", ">=", "<=", "~=", "!=", ">", "<")


def parse_tool_list(output: str) -> set[str]:
    """Tool names from ``uv tool list`` output.

    Tool lines look like ``ruff v0.6.9``; the executables they provide
    follow as indented ``- ruff`` lines.
    """
    names = set()
    for line in output.splitlines():
        if not line.strip() or line.startswith((" ", "\t", "-")):
            continue
        parts = line.split()
        if len(parts) >= 2 and parts[1].startswith("v"):
            names.add(parts[0].lower())
    return names


def requirement(resource: Resource) -> str:
    """The requirement string passed to ``uv tool install``."""
    constraint = resource.version_constraint
    if not constraint or constraint == "latest":
        return resource.name
    if constraint.startswith(_OPERATORS):
        return f"{resource.name}{constraint}"
    return f"{resource.name}=={constraint}"


class UvToolAdapter(Adapter):
    """Global Python tools through ``uv tool install``."""

    kinds = frozenset({ResourceKind.PACKAGE})

    @property
    def name(self) -> str:
        return "uv"

    def is_available(self, env: Environment) -> bool:
        return env.which("uv") is not None

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        if not env.which("uv"):
            raise ProbeIndeterminate("uv not on PATH")
        result = run_command(["uv", "tool", "list"], env, timeout=60)
        if not result.ok:
            raise ProbeIndeterminate(f"uv tool list failed: {result.diagnostic}")
        if resource.name.lower() in parse_tool_list(result.stdout):
            return PresenceResult.PRESENT
        return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        if not env.which("uv"):
            raise DependencyMissing("uv", "the uv step must run first")
        result = run_command(
            ["uv", "tool", "install", requirement(resource)],
            env,
            timeout=resource.param("timeout", 900),
        )
        return classify(result, already_markers=ALREADY_MARKERS)

    def upgrade(self, resource: Resource, env: Environment) -> InstallResult:
        if not env.which("uv"):
            raise DependencyMissing("uv")
        result = run_command(
            ["uv", "tool", "upgrade", resource.name],
            env,
            timeout=resource.param("timeout", 900),
        )
        return classify(result, already_markers=UP_TO_DATE_MARKERS, upgrade=True)
