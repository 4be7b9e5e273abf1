"""
Check use case — probe every step without installing anything.

Answers "what would a run do on this machine right now". Probes see
the same environment a real run would: exports of steps found present
are applied before the next probe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from devbox.adapters.registry import AdapterRegistry, default_registry
from devbox.core.config.loader import ConfigError, load_profile
from devbox.core.engine.environment import Environment
from devbox.core.engine.planner import build_steps
from devbox.core.models.outcome import PresenceResult
from devbox.core.models.profile import Profile

logger = logging.getLogger(__name__)


@dataclass
class ProbeEntry:
    index: int
    label: str
    resource: str
    presence: PresenceResult


@dataclass
class CheckResult:
    """Presence of every step's resource."""

    profile: Profile | None = None
    entries: list[ProbeEntry] = field(default_factory=list)
    error: str | None = None

    @property
    def present(self) -> int:
        return sum(1 for e in self.entries if e.presence is PresenceResult.PRESENT)

    @property
    def missing(self) -> list[str]:
        return [e.label for e in self.entries if e.presence is PresenceResult.ABSENT]

    @property
    def exit_code(self) -> int:
        if self.error:
            return 2
        return 1 if self.missing else 0

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "profile": self.profile.name if self.profile else "",
            "present": self.present,
            "missing": self.missing,
            "steps": [
                {
                    "index": e.index,
                    "label": e.label,
                    "resource": e.resource,
                    "presence": e.presence.value,
                }
                for e in self.entries
            ],
        }


def check_profile(
    profile_ref: str | None = None,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    env: Environment | None = None,
) -> CheckResult:
    """Probe each step of a profile, in order.

    Args:
        profile_ref: Bundled profile name or path. None = auto-detect.
        mock_mode: Route every probe to the mock adapter.
        registry: Optional pre-configured adapter registry.
        env: Optional starting environment (default: os.environ).
    """
    result = CheckResult()

    try:
        profile = load_profile(profile_ref)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.profile = profile

    if registry is None:
        registry = default_registry(mock_mode=mock_mode)
    env = env if env is not None else Environment()

    for index, step in enumerate(build_steps(profile, registry), start=1):
        presence = step.check(env)
        result.entries.append(ProbeEntry(index, step.label, step.resource.ref, presence))
        logger.info("%s %s: %s", "✓" if presence is PresenceResult.PRESENT else "✗", step.label,
                    presence.value)
        if presence is PresenceResult.PRESENT:
            env.apply_all(step.environment_changes(env))

    return result
