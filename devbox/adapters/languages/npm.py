"""
npm adapter — global Node.js CLIs (``npm install -g``).

Depends on a Node runtime being active on the run environment's PATH,
which the fnm step's activation provides.
"""

from __future__ import annotations

import json
import logging

from devbox.adapters.base import Adapter
from devbox.adapters.shell.command import classify, run_command
from devbox.core.engine.environment import Environment
from devbox.core.errors import DependencyMissing, ProbeIndeterminate
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource, ResourceKind

logger = logging.getLogger(__name__)


def global_packages(output: str) -> set[str]:
    """Package names from ``npm ls -g --depth=0 --json`` output."""
    try:
        data = json.loads(output or "{}")
    except json.JSONDecodeError as e:
        raise ProbeIndeterminate(f"unparseable npm ls output: {e}") from e
    return set((data.get("dependencies") or {}).keys())


class NpmAdapter(Adapter):
    """Global npm packages, e.g. ``@google/gemini-cli``."""

    kinds = frozenset({ResourceKind.PACKAGE})

    @property
    def name(self) -> str:
        return "npm"

    def is_available(self, env: Environment) -> bool:
        return env.which("npm") is not None

    def _spec(self, resource: Resource) -> str:
        if resource.version_constraint:
            return f"{resource.name}@{resource.version_constraint}"
        return resource.name

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        if not env.which("npm"):
            raise ProbeIndeterminate("npm not on PATH")
        # npm ls exits non-zero on peer-dependency noise; the JSON is still valid
        result = run_command(["npm", "ls", "-g", "--depth=0", "--json"], env, timeout=120)
        if resource.name in global_packages(result.stdout):
            return PresenceResult.PRESENT
        return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        if not env.which("npm"):
            raise DependencyMissing("npm", "is a Node.js runtime active?")
        result = run_command(
            ["npm", "install", "-g", self._spec(resource)],
            env,
            timeout=resource.param("timeout", 900),
        )
        return classify(result)

    def upgrade(self, resource: Resource, env: Environment) -> InstallResult:
        if not env.which("npm"):
            raise DependencyMissing("npm")
        result = run_command(
            ["npm", "update", "-g", resource.name],
            env,
            timeout=resource.param("timeout", 900),
        )
        return classify(result, upgrade=True)
