"""
Profile block adapter — marked configuration blocks in shell profiles.

A block of shell configuration (exports, PATH entries, ``eval`` lines)
is appended to a file such as ``~/.bashrc`` exactly once. The opening
marker line is the durable "already applied" flag: if the exact marker
string is in the file, the block is present.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devbox.adapters.base import Adapter
from devbox.core.engine.environment import Environment
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource, ResourceKind

logger = logging.getLogger(__name__)


def render_block(marker: str, body: str, end_marker: str | None = None) -> str:
    """The exact text appended to the target file."""
    lines = ["", marker, body.strip("\n")]
    if end_marker:
        lines.append(end_marker)
    return "\n".join(lines) + "\n\n"


class ProfileBlockAdapter(Adapter):
    """Append-once configuration blocks.

    Resource params:
        path (str): Target file (``~`` and ``$VAR`` are expanded).
        marker (str): Opening marker line, the presence flag.
        end_marker (str): Optional closing marker line.
        body (str): Block content between the markers.
    """

    kinds = frozenset({ResourceKind.CONFIG_BLOCK})

    @property
    def name(self) -> str:
        return "profile"

    def is_available(self, env: Environment) -> bool:
        return True

    def validate(self, resource: Resource) -> tuple[bool, str]:
        ok, msg = super().validate(resource)
        if not ok:
            return ok, msg
        for key in ("path", "marker", "body"):
            if not resource.param(key):
                return False, f"Missing required param: '{key}'"
        if resource.param("marker") in resource.param("body"):
            return False, "Block body must not contain its own marker"
        return True, ""

    def _target(self, resource: Resource, env: Environment) -> Path:
        return Path(env.expand(resource.param("path")))

    def _has_marker(self, target: Path, marker: str) -> bool:
        if not target.is_file():
            return False
        return marker in target.read_text(encoding="utf-8", errors="replace")

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        if self._has_marker(self._target(resource, env), resource.param("marker")):
            return PresenceResult.PRESENT
        return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        target = self._target(resource, env)
        marker = resource.param("marker")

        # Re-check right before writing: appending twice is never allowed
        if self._has_marker(target, marker):
            return InstallResult.already_present(reason=f"marker found in {target}")

        block = render_block(marker, resource.param("body"), resource.param("end_marker"))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("a", encoding="utf-8") as fh:
                fh.write(block)
        except OSError as e:
            return InstallResult.failure(reason=f"Cannot write {target}: {e}", diagnostic=str(e))

        logger.info("Appended configuration block to %s", target)
        return InstallResult.installed(metadata={"path": str(target), "bytes": len(block)})
