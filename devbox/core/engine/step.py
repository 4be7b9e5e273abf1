"""
Step — one check-then-act unit of provisioning.

A Step pairs a resource with a presence probe and an installer action.
Evaluating it probes first and only acts when the resource is absent,
so running the same step twice is safe.

Steps are built once from the profile and never mutated. Their
callables are bound to an adapter (see ``planner.build_steps``) but a
test can hand in any plain function.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from devbox.core.engine.environment import Environment
from devbox.core.errors import InstallFailed, ProvisionError
from devbox.core.models.environment import EnvDelta
from devbox.core.models.outcome import InstallResult, PresenceResult
from devbox.core.models.resource import Resource

logger = logging.getLogger(__name__)

ProbeFn = Callable[[Environment], PresenceResult]
ActionFn = Callable[[Environment], InstallResult]
ActivateFn = Callable[[Environment], list[EnvDelta]]


@dataclass(frozen=True)
class Step:
    """A labelled, idempotent provisioning step."""

    label: str
    resource: Resource
    probe: ProbeFn
    install: ActionFn
    best_effort: bool = False
    upgrade: ActionFn | None = None
    exports: tuple[EnvDelta, ...] = field(default_factory=tuple)
    activate: ActivateFn | None = None

    def check(self, env: Environment) -> PresenceResult:
        """Probe the resource. A probe that raises reads as ABSENT."""
        try:
            presence = self.probe(env)
        except Exception as e:
            logger.info("%s: probe raised (%s), treating as absent", self.label, e)
            return PresenceResult.ABSENT
        if presence is not PresenceResult.PRESENT:
            return PresenceResult.ABSENT
        return presence

    def evaluate(self, env: Environment) -> InstallResult:
        """Probe, then act only if needed.

        Never raises: exceptions from the installer action come back as
        a ``failed`` result with the matching error kind.
        """
        if self.check(env) is PresenceResult.PRESENT:
            if self.upgrade is None:
                return InstallResult.already_present()
            logger.info("%s: present, checking for upgrade", self.label)
            return self._act(self.upgrade, env)

        logger.info("%s: absent, installing", self.label)
        return self._act(self.install, env)

    def environment_changes(self, env: Environment) -> list[EnvDelta]:
        """Static exports followed by the adapter's activation deltas."""
        deltas = list(self.exports)
        if self.activate is not None:
            try:
                deltas.extend(self.activate(env))
            except Exception as e:
                logger.warning("%s: activation failed: %s", self.label, e)
        return deltas

    def _act(self, action: ActionFn, env: Environment) -> InstallResult:
        start = time.monotonic()
        try:
            result = action(env)
        except InstallFailed as e:
            result = InstallResult.failure(
                reason=str(e),
                exit_code=e.code,
                diagnostic=e.diagnostic,
            )
        except ProvisionError as e:
            result = InstallResult.failure(reason=str(e), error_kind=e.error_kind)
        except Exception as e:
            logger.error("%s: installer raised: %s", self.label, e)
            result = InstallResult.failure(reason=f"Unexpected error: {e}")

        if not result.duration_ms:
            result.duration_ms = int((time.monotonic() - start) * 1000)
        return result
