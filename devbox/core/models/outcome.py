"""
PresenceResult and InstallResult — the step execution contract.

Probes answer PresenceResult. Installer actions answer InstallResult.
This is the I/O contract between steps and adapters: adapters return
results, never exceptions. A failure carries the raw exit code and the
captured diagnostic output of the external tool.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class PresenceResult(str, Enum):
    """Outcome of a presence probe. Never cached across steps."""

    PRESENT = "present"
    ABSENT = "absent"


class InstallStatus(str, Enum):
    INSTALLED = "installed"
    UPGRADED = "upgraded"
    ALREADY_PRESENT = "already_present"
    SKIPPED = "skipped"
    FAILED = "failed"


ErrorKind = Literal["install_failed", "dependency_missing", "probe_indeterminate"]


class InstallResult(BaseModel):
    """Result of evaluating one step.

    ``failed`` results carry ``reason``, and when an external process
    was involved, its ``exit_code`` and ``diagnostic`` output.
    """

    status: InstallStatus
    reason: str = ""
    exit_code: int | None = None
    diagnostic: str = ""
    error_kind: ErrorKind | None = None

    recorded_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the resource is (now) in the desired state."""
        return self.status in (
            InstallStatus.INSTALLED,
            InstallStatus.UPGRADED,
            InstallStatus.ALREADY_PRESENT,
        )

    @property
    def failed(self) -> bool:
        return self.status is InstallStatus.FAILED

    @property
    def changed(self) -> bool:
        """Whether the step modified the machine."""
        return self.status in (InstallStatus.INSTALLED, InstallStatus.UPGRADED)

    @classmethod
    def installed(cls, **kwargs: Any) -> InstallResult:
        return cls(status=InstallStatus.INSTALLED, **kwargs)

    @classmethod
    def upgraded(cls, **kwargs: Any) -> InstallResult:
        return cls(status=InstallStatus.UPGRADED, **kwargs)

    @classmethod
    def already_present(cls, reason: str = "", **kwargs: Any) -> InstallResult:
        return cls(status=InstallStatus.ALREADY_PRESENT, reason=reason, **kwargs)

    @classmethod
    def skipped(cls, reason: str = "", **kwargs: Any) -> InstallResult:
        return cls(status=InstallStatus.SKIPPED, reason=reason, **kwargs)

    @classmethod
    def failure(
        cls,
        reason: str,
        exit_code: int | None = None,
        diagnostic: str = "",
        error_kind: ErrorKind = "install_failed",
        **kwargs: Any,
    ) -> InstallResult:
        return cls(
            status=InstallStatus.FAILED,
            reason=reason,
            exit_code=exit_code,
            diagnostic=diagnostic,
            error_kind=error_kind,
            **kwargs,
        )

    def describe(self) -> str:
        """Human-readable one-liner for reports."""
        label = self.status.value.replace("_", " ")
        if self.failed:
            code = f" (exit {self.exit_code})" if self.exit_code is not None else ""
            return f"{label}{code}: {self.reason}" if self.reason else f"{label}{code}"
        if self.reason and self.status is InstallStatus.SKIPPED:
            return f"{label} ({self.reason})"
        return label
