"""
Error taxonomy for provisioning.

These exceptions are raised *inside* probes and installer actions.
They never cross a Step boundary: the Step converts each one into a
PresenceResult or a failed InstallResult with a matching ``error_kind``.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for provisioning errors."""

    error_kind = "install_failed"


class ProbeIndeterminate(ProvisionError):
    """A probe could not tell whether the resource is present.

    Always mapped to ``absent``: an undecidable probe leads to an install
    attempt, never to a silent skip.
    """

    error_kind = "probe_indeterminate"


class InstallFailed(ProvisionError):
    """The external installer reported a failure that isn't "already satisfied"."""

    def __init__(self, message: str, code: int | None = None, diagnostic: str = ""):
        super().__init__(message)
        self.code = code
        self.diagnostic = diagnostic


class DependencyMissing(ProvisionError):
    """A collaborator tool this step needs is not available.

    Typically the tool was supposed to come from an earlier best-effort
    step that failed. Detected lazily, when the dependent step runs.
    """

    error_kind = "dependency_missing"

    def __init__(self, tool: str, hint: str = ""):
        message = f"'{tool}' not found on PATH"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)
        self.tool = tool
