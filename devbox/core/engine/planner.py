"""
Planner — turns declared steps into executable Steps.

Each step declaration gets its probe, install, upgrade and activation
callables bound to the adapter registry, so the runner never needs to
know which adapter backs a step.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from functools import partial

from devbox.adapters.registry import AdapterRegistry
from devbox.core.engine.step import Step
from devbox.core.models.profile import Profile, StepDecl

logger = logging.getLogger(__name__)


def build_step(decl: StepDecl, registry: AdapterRegistry) -> Step:
    """Bind one declaration to the registry."""
    resource = decl.resource
    return Step(
        label=decl.label,
        resource=resource,
        probe=partial(registry.probe, resource),
        install=partial(registry.install, resource),
        best_effort=decl.best_effort,
        upgrade=partial(registry.upgrade, resource) if decl.upgrade else None,
        exports=tuple(decl.exports),
        activate=partial(registry.activate, resource),
    )


def build_steps(
    source: Profile | Iterable[StepDecl],
    registry: AdapterRegistry,
) -> list[Step]:
    """Build the ordered step list for a profile (or explicit declarations)."""
    decls = source.step_decls() if isinstance(source, Profile) else list(source)
    steps = [build_step(decl, registry) for decl in decls]
    logger.debug("Planned %d steps", len(steps))
    return steps
