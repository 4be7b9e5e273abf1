"""
Script adapter — binaries installed by an installer one-liner.

Some tools ship an official ``curl ... | sh`` installer rather than a
package (uv, fnm, Homebrew itself). Presence is "the executable is on
the run environment's PATH"; installing runs the script line.
"""

from __future__ import annotations

import logging

from devbox.adapters.base import Adapter
from devbox.adapters.shell.command import classify, run_shell
from devbox.core.engine.environment import Environment
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource, ResourceKind

logger = logging.getLogger(__name__)


class ScriptAdapter(Adapter):
    """Install executables with a shell installer command.

    Resource params:
        script (str): Installer command line, run through ``sh -c``.
        command (str): Executable to look for (default: resource name).
        upgrade_script (str): Command line to update an installed tool.
        timeout (int): Timeout in seconds (default: 900).
    """

    kinds = frozenset({ResourceKind.BINARY})

    @property
    def name(self) -> str:
        return "script"

    def is_available(self, env: Environment) -> bool:
        return env.which("sh") is not None

    def validate(self, resource: Resource) -> tuple[bool, str]:
        ok, msg = super().validate(resource)
        if not ok:
            return ok, msg
        if not resource.param("script"):
            return False, "Missing required param: 'script'"
        return True, ""

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        command = resource.param("command", resource.name)
        if env.which(command):
            return PresenceResult.PRESENT
        return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        script = resource.param("script")
        logger.info("Running installer for %s", resource.name)
        result = run_shell(script, env, timeout=resource.param("timeout", 900))
        return classify(result)

    def upgrade(self, resource: Resource, env: Environment) -> InstallResult:
        script = resource.param("upgrade_script")
        if not script:
            return super().upgrade(resource, env)
        result = run_shell(script, env, timeout=resource.param("timeout", 900))
        return classify(
            result,
            already_markers=resource.param("up_to_date_markers", ["Already up-to-date"]),
            upgrade=True,
        )
