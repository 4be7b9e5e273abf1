"""
Mock adapter — universal test double for every resource kind.

Used in mock mode to simulate a machine without touching external
tools. Keeps an in-memory set of "present" resources: a successful
install adds the resource to it, so a second run sees everything as
already present, just like a real machine would.
"""

from __future__ import annotations

from devbox.adapters.base import Adapter
from devbox.core.engine.environment import Environment
from devbox.core.errors import ProbeIndeterminate
from devbox.core.models.environment import EnvDelta
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource


class MockAdapter(Adapter):
    """Universal mock adapter for testing.

    By default every resource is absent and every install succeeds.
    Individual resource names can be marked present, made to fail,
    made to raise during probing, or given activation deltas.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        present: set[str] | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._present: set[str] = set(present or ())
        self._failures: dict[str, InstallResult] = {}
        self._broken_probes: set[str] = set()
        self._activations: dict[str, list[EnvDelta]] = {}
        self._probe_log: list[str] = []
        self._install_log: list[str] = []
        self._upgrade_log: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def probe_log(self) -> list[str]:
        """Resource names probed, in order."""
        return self._probe_log

    @property
    def install_log(self) -> list[str]:
        """Resource names installed, in order."""
        return self._install_log

    @property
    def upgrade_log(self) -> list[str]:
        return self._upgrade_log

    @property
    def call_count(self) -> int:
        """Number of times install has been called."""
        return len(self._install_log)

    @property
    def present(self) -> set[str]:
        return set(self._present)

    def is_available(self, env: Environment) -> bool:
        return self._available

    def set_present(self, *names: str) -> None:
        self._present.update(names)

    def set_failure(self, name: str, error: str = "Mock failure", exit_code: int = 1) -> None:
        """Configure installs of a resource to fail."""
        self._failures[name] = InstallResult.failure(
            reason=error,
            exit_code=exit_code,
            diagnostic=error,
        )

    def set_broken_probe(self, name: str) -> None:
        """Make probing a resource raise ProbeIndeterminate."""
        self._broken_probes.add(name)

    def set_activation(self, name: str, deltas: list[EnvDelta]) -> None:
        self._activations[name] = list(deltas)

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        self._probe_log.append(resource.name)
        if resource.name in self._broken_probes:
            raise ProbeIndeterminate(f"[mock] cannot probe {resource.name}")
        if resource.name in self._present:
            return PresenceResult.PRESENT
        return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        self._install_log.append(resource.name)
        if resource.name in self._failures:
            return self._failures[resource.name].model_copy()
        if resource.name in self._present:
            return InstallResult.already_present(reason="[mock] already installed")
        self._present.add(resource.name)
        return InstallResult.installed(metadata={"mock": True})

    def upgrade(self, resource: Resource, env: Environment) -> InstallResult:
        self._upgrade_log.append(resource.name)
        return InstallResult.already_present(reason="[mock] no update available")

    def activate(self, resource: Resource, env: Environment) -> list[EnvDelta]:
        return list(self._activations.get(resource.name, []))

    def reset(self) -> None:
        """Clear call logs, failures and the present set."""
        self._present.clear()
        self._failures.clear()
        self._broken_probes.clear()
        self._activations.clear()
        self._probe_log.clear()
        self._install_log.clear()
        self._upgrade_log.clear()
