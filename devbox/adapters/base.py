"""
Adapter base — the contract between the runner and external tools.

This defines the abstract interface every collaborator adapter
implements. Steps only talk to package managers, version managers and
editor CLIs through this contract, never directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from devbox.core.engine.environment import Environment
from devbox.core.models.environment import EnvDelta
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource, ResourceKind


class Adapter(ABC):
    """Abstract base class for all adapters.

    Probes are read-only and fail open: when presence can't be decided
    they return ABSENT (or raise ProbeIndeterminate, which the step maps
    to ABSENT). Installer actions return results; failures are captured
    in the InstallResult.

    To create a new adapter:
        1. Subclass Adapter
        2. Implement name, is_available, probe, install
        3. Register it in the AdapterRegistry
    """

    #: Resource kinds this adapter knows how to handle.
    kinds: ClassVar[frozenset[ResourceKind]] = frozenset()

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'apt', 'brew', 'vscode')."""

    @abstractmethod
    def is_available(self, env: Environment) -> bool:
        """Check if this adapter's underlying tool can be found.

        Should be fast and never raise.
        """

    @abstractmethod
    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        """Report whether the resource is currently present. Read-only."""

    @abstractmethod
    def install(self, resource: Resource, env: Environment) -> InstallResult:
        """Bring the resource into the present state.

        Must be safe to call when the resource is already present.
        """

    def upgrade(self, resource: Resource, env: Environment) -> InstallResult:
        """Bring a present resource up to date.

        Adapters without an upgrade path report it as already present.
        """
        return InstallResult.already_present(reason=f"{self.name} has no upgrade action")

    def activate(self, resource: Resource, env: Environment) -> list[EnvDelta]:
        """Environment changes a present resource needs for later steps."""
        return []

    def validate(self, resource: Resource) -> tuple[bool, str]:
        """Check static configuration for a resource.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """
        if self.kinds and resource.kind not in self.kinds:
            allowed = ", ".join(sorted(k.value for k in self.kinds))
            return False, f"adapter '{self.name}' handles {allowed}, not {resource.kind.value}"
        return True, ""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
