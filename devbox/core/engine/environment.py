"""
Run environment — the explicit context threaded through a run.

Instead of mutating ``os.environ`` as a side effect of installing
things, each step's environment changes are recorded as ordered
EnvDelta values on one Environment object. Every probe and install
sees the environment produced by all the steps before it, and every
spawned command gets ``env.as_dict()``.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from collections.abc import Iterable, Mapping

from devbox.core.models.environment import EnvDelta

logger = logging.getLogger(__name__)

_VAR_RE = re.compile(r"\$(?:\{(\w+)\}|(\w+))")


class Environment:
    """A base environment snapshot plus the deltas applied on top of it."""

    def __init__(self, base: Mapping[str, str] | None = None):
        self._base: dict[str, str] = dict(os.environ if base is None else base)
        self._vars: dict[str, str] = dict(self._base)
        self._deltas: list[EnvDelta] = []

    @property
    def deltas(self) -> list[EnvDelta]:
        """Every delta applied so far, in order."""
        return list(self._deltas)

    @property
    def home(self) -> str:
        return self._vars.get("HOME") or self._vars.get("USERPROFILE") or os.path.expanduser("~")

    def get(self, var: str, default: str | None = None) -> str | None:
        return self._vars.get(var, default)

    def as_dict(self) -> dict[str, str]:
        """The environment to hand to a subprocess."""
        return dict(self._vars)

    def path_entries(self) -> list[str]:
        raw = self._vars.get("PATH", "")
        return [p for p in raw.split(os.pathsep) if p]

    def which(self, command: str) -> str | None:
        """Resolve a command against this environment's PATH."""
        return shutil.which(command, path=self._vars.get("PATH", ""))

    def expand(self, value: str) -> str:
        """Expand ``~`` and ``$VAR`` against the current variables."""
        if value.startswith("~"):
            value = self.home + value[1:]

        def _sub(match: re.Match[str]) -> str:
            name = match.group(1) or match.group(2)
            if name == "HOME":
                return self.home
            return self._vars.get(name, "")

        return _VAR_RE.sub(_sub, value)

    def apply(self, delta: EnvDelta) -> None:
        """Apply one delta. Prepending an entry already at the front is a no-op."""
        value = self.expand(delta.value)
        current = self._vars.get(delta.var, "")

        if delta.mode == "set":
            self._vars[delta.var] = value
        else:
            parts = [p for p in current.split(os.pathsep) if p and p != value]
            if delta.mode == "prepend":
                parts.insert(0, value)
            else:
                parts.append(value)
            self._vars[delta.var] = os.pathsep.join(parts)

        self._deltas.append(delta)
        logger.debug("env: %s", delta.describe())

    def apply_all(self, deltas: Iterable[EnvDelta]) -> None:
        for delta in deltas:
            self.apply(delta)

    def __repr__(self) -> str:
        return f"<Environment deltas={len(self._deltas)}>"
