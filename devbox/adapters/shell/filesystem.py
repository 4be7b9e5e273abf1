"""
Directory adapter — the standard workspace directory tree.

Ensures directories exist (``mkdir -p`` semantics). Paths may use
``~`` and ``$VAR``; they're expanded against the run environment.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devbox.adapters.base import Adapter
from devbox.core.engine.environment import Environment
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource, ResourceKind

logger = logging.getLogger(__name__)


class DirectoryAdapter(Adapter):
    """Directory creation with presence checks.

    Resource params:
        path (str): Directory path (default: the resource name).
    """

    kinds = frozenset({ResourceKind.DIRECTORY})

    @property
    def name(self) -> str:
        return "directory"

    def is_available(self, env: Environment) -> bool:
        return True  # filesystem is always available

    def _target(self, resource: Resource, env: Environment) -> Path:
        return Path(env.expand(resource.param("path", resource.name)))

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        if self._target(resource, env).is_dir():
            return PresenceResult.PRESENT
        return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        target = self._target(resource, env)
        if target.is_dir():
            return InstallResult.already_present(reason=f"{target} exists")
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return InstallResult.failure(
                reason=f"Cannot create {target}: {e}",
                diagnostic=str(e),
            )
        logger.info("Directory created: %s", target)
        return InstallResult.installed(metadata={"path": str(target)})
