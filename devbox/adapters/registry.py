"""
Adapter registry — central dispatch for all adapter operations.

The registry is the single point of adapter management. It handles
registration, lookup, mock mode, and dispatch of probes and installer
actions. Steps never hold adapters directly; they hold bound registry
calls.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from devbox.adapters.base import Adapter
from devbox.core.engine.environment import Environment
from devbox.core.errors import InstallFailed, ProvisionError
from devbox.core.models.environment import EnvDelta
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Central registry and dispatcher for adapters.

    Features:
        - Register/unregister adapters by name
        - Mock mode: route every resource to one mock adapter
        - Fail-open probing: any probe error reads as ABSENT
        - Install/upgrade dispatch that never raises
    """

    def __init__(self, mock_mode: bool = False, mock_adapter: Adapter | None = None):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode
        self._mock_adapter = mock_adapter

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def set_mock_mode(self, enabled: bool, mock_adapter: Adapter | None = None) -> None:
        """Enable or disable mock mode.

        Args:
            enabled: Whether to use mock mode.
            mock_adapter: Optional custom mock adapter. If None, a default
                MockAdapter is created on first use.
        """
        self._mock_mode = enabled
        self._mock_adapter = mock_adapter

    def register(self, adapter: Adapter) -> None:
        """Register an adapter."""
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def unregister(self, name: str) -> None:
        """Remove an adapter from the registry."""
        self._adapters.pop(name, None)

    def get(self, name: str) -> Adapter | None:
        """Look up an adapter by name."""
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        """List all registered adapter names."""
        return list(self._adapters.keys())

    def adapter_status(self, env: Environment) -> dict[str, dict[str, Any]]:
        """Get availability status of all registered adapters."""
        status = {}
        for name, adapter in self._adapters.items():
            try:
                available = adapter.is_available(env)
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": adapter.__class__.__name__,
                "kinds": sorted(k.value for k in adapter.kinds),
            }
        return status

    def resolve(self, resource: Resource) -> Adapter | None:
        """The adapter that handles a resource (the mock, in mock mode)."""
        if self._mock_mode:
            if self._mock_adapter is None:
                from devbox.adapters.mock import MockAdapter

                self._mock_adapter = MockAdapter()
            return self._mock_adapter
        return self._adapters.get(resource.adapter)

    # ── Dispatch ─────────────────────────────────────────────────

    def probe(self, resource: Resource, env: Environment) -> PresenceResult:
        """Probe a resource. Never raises; anything undecidable is ABSENT."""
        adapter = self.resolve(resource)
        if adapter is None:
            logger.warning("No adapter registered for '%s' — treating as absent", resource.adapter)
            return PresenceResult.ABSENT
        try:
            return adapter.probe(resource, env)
        except Exception as e:
            logger.info("Probe for %s indeterminate (%s) — treating as absent", resource.ref, e)
            return PresenceResult.ABSENT

    def install(self, resource: Resource, env: Environment) -> InstallResult:
        """Install a resource through its adapter. Never raises."""
        return self._dispatch("install", resource, env)

    def upgrade(self, resource: Resource, env: Environment) -> InstallResult:
        """Upgrade a present resource through its adapter. Never raises."""
        return self._dispatch("upgrade", resource, env)

    def activate(self, resource: Resource, env: Environment) -> list[EnvDelta]:
        """Collect activation deltas for a present resource."""
        adapter = self.resolve(resource)
        if adapter is None:
            return []
        try:
            return adapter.activate(resource, env)
        except Exception as e:
            logger.warning("Activation of %s failed: %s", resource.ref, e)
            return []

    def _dispatch(self, operation: str, resource: Resource, env: Environment) -> InstallResult:
        start_time = time.monotonic()

        adapter = self.resolve(resource)
        if adapter is None:
            return InstallResult.failure(
                reason=f"No adapter registered for '{resource.adapter}'",
                error_kind="dependency_missing",
            )

        is_valid, error_msg = adapter.validate(resource)
        if not is_valid:
            return InstallResult.failure(reason=f"Validation failed: {error_msg}")

        try:
            result = getattr(adapter, operation)(resource, env)
        except InstallFailed as e:
            result = InstallResult.failure(
                reason=str(e),
                exit_code=e.code,
                diagnostic=e.diagnostic,
            )
        except ProvisionError as e:
            result = InstallResult.failure(reason=str(e), error_kind=e.error_kind)
        except Exception as e:
            logger.error("Adapter %s raised during %s: %s", adapter.name, operation, e)
            result = InstallResult.failure(reason=f"Unexpected error: {e}")

        if not result.duration_ms:
            result.duration_ms = int((time.monotonic() - start_time) * 1000)
        return result


def default_registry(mock_mode: bool = False) -> AdapterRegistry:
    """A registry with every built-in adapter registered."""
    from devbox.adapters.editors.vscode import VSCodeAdapter
    from devbox.adapters.languages.fnm import FnmAdapter
    from devbox.adapters.languages.npm import NpmAdapter
    from devbox.adapters.languages.uv import UvToolAdapter
    from devbox.adapters.packages.apt import AptAdapter
    from devbox.adapters.packages.brew import BrewAdapter
    from devbox.adapters.packages.winget import WingetAdapter
    from devbox.adapters.shell.filesystem import DirectoryAdapter
    from devbox.adapters.shell.profile import ProfileBlockAdapter
    from devbox.adapters.shell.script import ScriptAdapter

    registry = AdapterRegistry(mock_mode=mock_mode)
    for adapter in (
        ScriptAdapter(),
        DirectoryAdapter(),
        ProfileBlockAdapter(),
        AptAdapter(),
        BrewAdapter(),
        WingetAdapter(),
        UvToolAdapter(),
        NpmAdapter(),
        FnmAdapter(),
        VSCodeAdapter(),
    ):
        registry.register(adapter)
    return registry
