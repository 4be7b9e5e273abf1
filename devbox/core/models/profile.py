"""
Profile model — the declared provisioning sequence.

Loaded from a YAML profile, this is the canonical list of what a
workstation should have, in the order it must be set up. If a step
isn't declared here, the runner doesn't know about it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

from devbox.core.models.environment import EnvDelta
from devbox.core.models.resource import Resource, ResourceKind


class StepDecl(BaseModel):
    """One concrete step, after expanding a StepSpec."""

    label: str
    resource: Resource
    best_effort: bool = False
    upgrade: bool = False
    exports: list[EnvDelta] = Field(default_factory=list)


class StepSpec(BaseModel):
    """A step declaration as written in the profile.

    Either ``name`` (one resource) or ``names`` (one step per entry,
    sharing every other field) must be given.
    """

    label: str = ""
    name: str | None = None
    names: list[str] = Field(default_factory=list)
    kind: ResourceKind
    adapter: str
    version: str | None = None
    best_effort: bool = False
    upgrade: bool = False
    params: dict[str, Any] = Field(default_factory=dict)
    exports: list[EnvDelta] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_of_name_or_names(self) -> StepSpec:
        if self.name and self.names:
            raise ValueError("use either 'name' or 'names', not both")
        if not self.name and not self.names:
            raise ValueError("step needs 'name' or 'names'")
        return self

    def expand(self) -> list[StepDecl]:
        """Expand into concrete steps, preserving declaration order."""
        names = [self.name] if self.name else list(self.names)
        decls = []
        for name in names:
            if self.name:
                label = self.label or f"{self.adapter}:{name}"
            else:
                label = f"{self.label}: {name}" if self.label else f"{self.adapter}:{name}"
            decls.append(
                StepDecl(
                    label=label,
                    resource=Resource(
                        name=name,
                        kind=self.kind,
                        adapter=self.adapter,
                        version_constraint=self.version,
                        params=dict(self.params),
                    ),
                    best_effort=self.best_effort,
                    upgrade=self.upgrade,
                    exports=list(self.exports),
                )
            )
        return decls


class Profile(BaseModel):
    """Root provisioning profile — loaded from a YAML file."""

    version: int = 1

    name: str
    description: str = ""
    platform: str = ""               # wsl, macos, windows
    steps: list[StepSpec] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)

    def step_decls(self) -> list[StepDecl]:
        """All concrete steps, in execution order."""
        decls: list[StepDecl] = []
        for spec in self.steps:
            decls.extend(spec.expand())
        return decls

    def labels(self) -> list[str]:
        return [d.label for d in self.step_decls()]
