"""
Command execution — the single place where processes are spawned.

Every adapter runs its external tool through ``run_command``. Logging,
timeouts, sudo prefixing and "command not found" handling live here,
and so does ``classify``: the one mapping from an exit code plus
diagnostic output to an InstallResult.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from devbox.core.engine.environment import Environment
from devbox.core.models.outcome import InstallResult

logger = logging.getLogger(__name__)

# Conventional shell exit codes, used when the process never ran
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124

# Keep the tail of long installer output
_DIAGNOSTIC_LIMIT = 2000


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr together (some tools report on either)."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    @property
    def diagnostic(self) -> str:
        text = (self.stderr or self.stdout).strip()
        return text[-_DIAGNOSTIC_LIMIT:]


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def run_command(
    argv: Sequence[str],
    env: Environment,
    *,
    timeout: int = 600,
    needs_sudo: bool = False,
    cwd: str | None = None,
) -> CommandResult:
    """Run a command with the run environment and capture its output.

    Never raises for process-level failures: a missing executable comes
    back as exit code 127, a timeout as 124.

    Args:
        argv: Command and arguments.
        env: Run environment (PATH and friends come from here).
        timeout: Seconds before the process is killed.
        needs_sudo: Prefix with ``sudo`` unless already root.
        cwd: Working directory.
    """
    cmd = list(argv)
    if needs_sudo and not is_root():
        cmd = ["sudo", *cmd]

    logger.debug("CMD %s", format_argv(cmd))
    start = time.monotonic()

    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env.as_dict(),
            cwd=cwd,
        )
    except FileNotFoundError:
        return CommandResult(
            argv=cmd,
            returncode=EXIT_NOT_FOUND,
            stdout="",
            stderr=f"{cmd[0]}: command not found",
            duration_ms=int((time.monotonic() - start) * 1000),
        )
    except subprocess.TimeoutExpired:
        return CommandResult(
            argv=cmd,
            returncode=EXIT_TIMEOUT,
            stdout="",
            stderr=f"Command timed out after {timeout}s",
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    if proc.stdout:
        logger.debug("STDOUT %s", proc.stdout.strip()[-_DIAGNOSTIC_LIMIT:])
    if proc.stderr:
        logger.debug("STDERR %s", proc.stderr.strip()[-_DIAGNOSTIC_LIMIT:])

    return CommandResult(
        argv=cmd,
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
        duration_ms=elapsed_ms,
    )


def run_shell(
    script: str,
    env: Environment,
    *,
    timeout: int = 900,
) -> CommandResult:
    """Run a shell command line (pipes and all) through ``sh -c``."""
    return run_command(["sh", "-c", script], env, timeout=timeout)


def classify(
    result: CommandResult,
    *,
    already_codes: Iterable[int] = (),
    already_markers: Iterable[str] = (),
    upgrade: bool = False,
) -> InstallResult:
    """Map an installer's exit status to an InstallResult.

    - a known "already installed" / "no update available" exit code
      → already_present
    - exit 0 with a known marker in the output → already_present
    - exit 0 → installed (upgraded, for upgrade commands)
    - anything else → failed, with the raw code and diagnostic output,
      whatever the output says

    Exit codes are compared as unsigned 32-bit values so Windows
    HRESULT-style codes match whether they arrive signed or not.
    """
    code = result.returncode & 0xFFFFFFFF
    known = {c & 0xFFFFFFFF for c in already_codes}
    text = result.output.lower()
    marker_hit = result.returncode == 0 and any(m.lower() in text for m in already_markers)
    meta = {"command": format_argv(result.argv), "return_code": result.returncode}

    if code in known or marker_hit:
        return InstallResult.already_present(
            reason="reported as already satisfied",
            exit_code=result.returncode,
            duration_ms=result.duration_ms,
            metadata=meta,
        )

    if result.returncode == 0:
        factory = InstallResult.upgraded if upgrade else InstallResult.installed
        return factory(duration_ms=result.duration_ms, metadata=meta)

    if result.returncode == EXIT_NOT_FOUND and "command not found" in result.stderr:
        return InstallResult.failure(
            reason=f"'{result.argv[0]}' not found on PATH",
            exit_code=result.returncode,
            diagnostic=result.diagnostic,
            error_kind="dependency_missing",
            duration_ms=result.duration_ms,
            metadata=meta,
        )

    return InstallResult.failure(
        reason=f"Command failed (exit {result.returncode}): {format_argv(result.argv)}",
        exit_code=result.returncode,
        diagnostic=result.diagnostic,
        duration_ms=result.duration_ms,
        metadata=meta,
    )
