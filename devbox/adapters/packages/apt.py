"""
APT adapter — Debian/Ubuntu system packages.

Queries ``dpkg-query`` for presence and installs with ``apt-get``.
The package index is refreshed once per run, before the first install,
and again after a third-party repository is added.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from devbox.adapters.base import Adapter
from devbox.adapters.shell.command import classify, is_root, run_command, run_shell
from devbox.core.engine.environment import Environment
from devbox.core.errors import DependencyMissing, InstallFailed, ProbeIndeterminate
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource, ResourceKind

logger = logging.getLogger(__name__)

_APT_GET = ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get"]

ALREADY_MARKERS = ("is already the newest version",)


class AptAdapter(Adapter):
    """System packages through apt.

    Resource params:
        repository (dict): Optional third-party repository, configured
            before installing when ``list_file`` doesn't exist yet:
              key_url   — URL of the ASCII-armored signing key
              keyring   — where the dearmored key is written
              source    — the ``deb ...`` line
              list_file — sources.list.d file to write
        timeout (int): Timeout in seconds (default: 900).
    """

    kinds = frozenset({ResourceKind.PACKAGE})

    def __init__(self) -> None:
        self._index_fresh = False

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self, env: Environment) -> bool:
        return env.which("apt-get") is not None

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        if not env.which("dpkg-query"):
            raise ProbeIndeterminate("dpkg-query not available")
        result = run_command(
            ["dpkg-query", "-W", "-f=${Status}", resource.name],
            env,
            timeout=30,
        )
        if result.ok and "install ok installed" in result.stdout:
            return PresenceResult.PRESENT
        return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        if not env.which("apt-get"):
            raise DependencyMissing("apt-get", "not a Debian-based system?")

        repo = resource.param("repository")
        if repo:
            self._ensure_repository(repo, env)

        self.refresh_index(env)
        result = run_command(
            [*_APT_GET, "install", "-y", resource.name],
            env,
            timeout=resource.param("timeout", 900),
            needs_sudo=True,
        )
        return classify(result, already_markers=ALREADY_MARKERS)

    def upgrade(self, resource: Resource, env: Environment) -> InstallResult:
        self.refresh_index(env)
        result = run_command(
            [*_APT_GET, "install", "--only-upgrade", "-y", resource.name],
            env,
            timeout=resource.param("timeout", 900),
            needs_sudo=True,
        )
        return classify(result, already_markers=ALREADY_MARKERS, upgrade=True)

    def refresh_index(self, env: Environment, force: bool = False) -> None:
        """Run ``apt-get update`` once per run (or again when forced)."""
        if self._index_fresh and not force:
            return
        logger.info("Updating apt package lists")
        result = run_command([*_APT_GET, "update"], env, timeout=600, needs_sudo=True)
        if not result.ok:
            raise InstallFailed(
                f"apt-get update failed (exit {result.returncode})",
                code=result.returncode,
                diagnostic=result.diagnostic,
            )
        self._index_fresh = True

    def _ensure_repository(self, repo: dict, env: Environment) -> None:
        list_file = repo.get("list_file", "")
        if not list_file:
            raise InstallFailed("repository needs a 'list_file'")
        if Path(list_file).is_file():
            return

        sudo = "" if is_root() else "sudo "
        steps = []
        if repo.get("key_url") and repo.get("keyring"):
            steps.append(
                f"curl -fsSL {shlex.quote(repo['key_url'])} | "
                f"{sudo}gpg --dearmor --yes -o {shlex.quote(repo['keyring'])}"
            )
        steps.append(
            f"echo {shlex.quote(repo['source'])} | {sudo}tee {shlex.quote(list_file)} > /dev/null"
        )

        for line in steps:
            logger.info("Configuring apt repository: %s", list_file)
            result = run_shell(line, env, timeout=300)
            if not result.ok:
                raise InstallFailed(
                    f"Repository setup failed (exit {result.returncode})",
                    code=result.returncode,
                    diagnostic=result.diagnostic,
                )
        self.refresh_index(env, force=True)
