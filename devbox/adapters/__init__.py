"""Adapters — bindings to package managers, version managers and editor CLIs.

Public re-exports for convenient access.
"""

from devbox.adapters.base import Adapter
from devbox.adapters.mock import MockAdapter
from devbox.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "MockAdapter",
    "default_registry",
]
