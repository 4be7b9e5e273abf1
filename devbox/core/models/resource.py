"""
Resource model — the identity of something to ensure present.

A Resource names an external thing (a package, a binary, an editor
extension, a block in a shell profile) and which adapter owns it.
Resources are immutable once constructed: the runner, the adapters
and the report all share the same instance.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ResourceKind(str, Enum):
    """What sort of thing a resource is."""

    BINARY = "binary"              # an executable on PATH
    PACKAGE = "package"            # managed by a package manager
    CONFIG_BLOCK = "config_block"  # a marked block in a text file
    EXTENSION = "extension"        # an editor extension
    DIRECTORY = "directory"        # a directory in the workspace tree
    RUNTIME = "runtime"            # a runtime managed by a version manager


class Resource(BaseModel):
    """An external resource to bring into the "present" state.

    ``params`` is static, adapter-specific configuration (installer
    script, cask flag, profile path, ...). Adapters read it; nothing
    writes it after construction.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ResourceKind
    adapter: str
    version_constraint: str | None = None    # "latest", "lts", "v20", ...
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def ref(self) -> str:
        """Short ``adapter:name`` reference for logs."""
        return f"{self.adapter}:{self.name}"

    def param(self, key: str, default: Any = None) -> Any:
        """Read one adapter parameter."""
        return self.params.get(key, default)
