"""
fnm adapter — Node.js runtimes through the Fast Node Manager.

Installs a release channel (``lts``, ``latest``) or an explicit
version, makes it the default, and activates it for the rest of the
run by putting its ``bin`` directory on PATH.

How activation is done is configuration, not logic: ``version-path``
points PATH at ``$FNM_DIR/node-versions/<version>/installation/bin``;
``default-alias`` points it at ``$FNM_DIR/aliases/default/bin``.
"""

from __future__ import annotations

import logging
import os
import re

from devbox.adapters.base import Adapter
from devbox.adapters.shell.command import classify, run_command
from devbox.core.engine.environment import Environment
from devbox.core.errors import DependencyMissing, InstallFailed, ProbeIndeterminate
from devbox.core.models.environment import EnvDelta
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource, ResourceKind

logger = logging.getLogger(__name__)

ALREADY_MARKERS = ("already installed",)
ACTIVATION_MODES = ("version-path", "default-alias")
CHANNELS = {"lts": "--lts", "latest": "--latest"}

_VERSION_RE = re.compile(r"v\d+(?:\.\d+)*")


def _version_key(version: str) -> tuple[int, ...]:
    return tuple(int(p) for p in version.lstrip("v").split("."))


def parse_versions(output: str) -> list[str]:
    """Installed versions from ``fnm ls`` output, oldest first."""
    found = {m.group(0) for m in _VERSION_RE.finditer(output)}
    return sorted(found, key=_version_key)


def parse_default(output: str) -> str | None:
    """The version carrying the ``default`` alias, if any."""
    for line in output.splitlines():
        if "default" in line:
            match = _VERSION_RE.search(line)
            if match:
                return match.group(0)
    return None


def matches(version: str, constraint: str | None) -> bool:
    """Whether an installed version satisfies a constraint.

    Channels (``lts``, ``latest``) are satisfied by any installed
    version; explicit constraints match on version prefix (``20`` and
    ``v20.11`` both match ``v20.11.0``).
    """
    if not constraint or constraint in CHANNELS:
        return True
    want = constraint.lstrip("v").split(".")
    have = version.lstrip("v").split(".")
    return have[: len(want)] == want


class FnmAdapter(Adapter):
    """Node.js runtimes through ``fnm``.

    Resource params:
        activation (str): 'version-path' (default) or 'default-alias'.
        fnm_dir (str): FNM_DIR when not set in the run environment.
        timeout (int): Timeout in seconds (default: 900).
    """

    kinds = frozenset({ResourceKind.RUNTIME})

    @property
    def name(self) -> str:
        return "fnm"

    def is_available(self, env: Environment) -> bool:
        return env.which("fnm") is not None

    def validate(self, resource: Resource) -> tuple[bool, str]:
        ok, msg = super().validate(resource)
        if not ok:
            return ok, msg
        activation = resource.param("activation", "version-path")
        if activation not in ACTIVATION_MODES:
            return False, f"Unknown activation '{activation}'. Valid: {', '.join(ACTIVATION_MODES)}"
        return True, ""

    def _fnm_dir(self, resource: Resource, env: Environment) -> str:
        return env.get("FNM_DIR") or env.expand(
            resource.param("fnm_dir", "~/.local/share/fnm")
        )

    def _list(self, env: Environment) -> str:
        result = run_command(["fnm", "ls"], env, timeout=60)
        if not result.ok:
            raise ProbeIndeterminate(f"fnm ls failed: {result.diagnostic}")
        return result.stdout

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        if not env.which("fnm"):
            raise ProbeIndeterminate("fnm not on PATH")
        output = self._list(env)
        installed = [v for v in parse_versions(output) if matches(v, resource.version_constraint)]
        if installed and parse_default(output):
            return PresenceResult.PRESENT
        return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        if not env.which("fnm"):
            raise DependencyMissing("fnm", "the fnm step must run first")

        constraint = resource.version_constraint or "lts"
        channel = CHANNELS.get(constraint, constraint)
        result = classify(
            run_command(["fnm", "install", channel], env, timeout=resource.param("timeout", 900)),
            already_markers=ALREADY_MARKERS,
        )
        if result.failed:
            return result

        candidates = [v for v in parse_versions(self._list(env)) if matches(v, constraint)]
        if not candidates:
            raise InstallFailed(f"fnm reported success but no version matches '{constraint}'")
        version = candidates[-1]

        default = run_command(["fnm", "default", version], env, timeout=60)
        if not default.ok:
            raise InstallFailed(
                f"fnm default {version} failed (exit {default.returncode})",
                code=default.returncode,
                diagnostic=default.diagnostic,
            )

        logger.info("Node.js %s installed and set as default", version)
        result.metadata["version"] = version
        return result

    def activate(self, resource: Resource, env: Environment) -> list[EnvDelta]:
        fnm_dir = self._fnm_dir(resource, env)
        if resource.param("activation", "version-path") == "default-alias":
            bin_dir = os.path.join(fnm_dir, "aliases", "default", "bin")
        else:
            output = self._list(env)
            version = parse_default(output)
            if version is None:
                versions = parse_versions(output)
                if not versions:
                    return []
                version = versions[-1]
            bin_dir = os.path.join(fnm_dir, "node-versions", version, "installation", "bin")
        return [EnvDelta.prepend_path(bin_dir)]
