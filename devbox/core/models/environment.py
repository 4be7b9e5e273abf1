"""
EnvDelta — one change to the run environment.

Steps describe the environment they leave behind (PATH entries,
FNM_DIR, ...) as deltas. The runner applies them in order, so later
steps see what earlier steps set up.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class EnvDelta(BaseModel):
    """Set, prepend to, or append to one environment variable.

    ``value`` may reference ``~`` and ``$VAR`` / ``${VAR}``; they are
    expanded against the environment at the moment the delta is applied.
    """

    model_config = ConfigDict(frozen=True)

    var: str
    value: str
    mode: Literal["set", "prepend", "append"] = "set"

    @classmethod
    def prepend_path(cls, value: str) -> EnvDelta:
        return cls(var="PATH", value=value, mode="prepend")

    def describe(self) -> str:
        if self.mode == "set":
            return f"{self.var}={self.value}"
        return f"{self.var} {self.mode} {self.value}"
