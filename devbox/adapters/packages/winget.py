"""
winget adapter — Windows host packages.

winget reports "nothing to do" through dedicated exit codes rather
than exit 0, so those codes are classified as already present instead
of failures.
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

# APPINSTALLER_CLI_ERROR_UPDATE_NOT_APPLICABLE
UPDATE_NOT_APPLICABLE = 0x8A15002B
# APPINSTALLER_CLI_ERROR_PACKAGE_ALREADY_INSTALLED
PACKAGE_ALREADY_INSTALLED = 0x8A150061

ALREADY_CODES = (UPDATE_NOT_APPLICABLE, PACKAGE_ALREADY_INSTALLED)
ALREADY_MARKERS = ("No available upgrade found", "Found an existing package already installed")

_AGREEMENTS = ["--accept-package-agreements", "--accept-source-agreements"]


class WingetAdapter(Adapter):
    """Packages through ``winget`` by exact id (e.g. ``Git.Git``).

    Resource params:
        source (str): winget source (default: winget).
        timeout (int): Timeout in seconds (default: 1800).
    """

    kinds = frozenset({ResourceKind.PACKAGE})

    @property
    def name(self) -> str:
        return "winget"

    def is_available(self, env: Environment) -> bool:
        return env.which("winget") is not None

    def _id_args(self, resource: Resource) -> list[str]:
        return ["--id", resource.name, "--exact", "--source", resource.param("source", "winget")]

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        if not env.which("winget"):
            raise ProbeIndeterminate("winget not on PATH")
        result = run_command(
            ["winget", "list", "--id", resource.name, "--exact", "--disable-interactivity"],
            env,
            timeout=120,
        )
        if result.ok and resource.name.lower() in result.stdout.lower():
            return PresenceResult.PRESENT
        return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        if not env.which("winget"):
            raise DependencyMissing("winget", "install App Installer from the Microsoft Store")
        result = run_command(
            ["winget", "install", *self._id_args(resource), "--silent", *_AGREEMENTS],
            env,
            timeout=resource.param("timeout", 1800),
        )
        return classify(result, already_codes=ALREADY_CODES, already_markers=ALREADY_MARKERS)

    def upgrade(self, resource: Resource, env: Environment) -> InstallResult:
        if not env.which("winget"):
            raise DependencyMissing("winget")
        result = run_command(
            ["winget", "upgrade", *self._id_args(resource), "--silent", *_AGREEMENTS],
            env,
            timeout=resource.param("timeout", 1800),
        )
        return classify(
            result,
            already_codes=ALREADY_CODES,
            already_markers=ALREADY_MARKERS,
            upgrade=True,
        )
