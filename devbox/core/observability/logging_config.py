"""
Logging configuration — one setup call for the CLI.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
what is configured here.

Console level precedence:
    --debug  >  --verbose  >  --quiet  >  DEVBOX_LOG_LEVEL  >  WARNING

Optional file output via DEVBOX_LOG_FILE / DEVBOX_LOG_FILE_LEVEL. The
file always gets the detailed format, which is where the full
installer diagnostics end up on a long provisioning run.
"""

from __future__ import annotations

import logging
import os
import sys

# (max level, format, datefmt), most detailed first
_CONSOLE_FORMATS: list[tuple[int, str, str | None]] = [
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
]
_CONSOLE_DEFAULT_FORMAT = "%(message)s"

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, then DEVBOX_LOG_LEVEL."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get("DEVBOX_LOG_LEVEL", "WARNING").upper()


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure the root logger for the whole process.

    Replaces any handlers already installed, so calling it again (as
    every CLI invocation does) never duplicates output.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path (default: DEVBOX_LOG_FILE).
        log_file_level: Level for the file (default: DEVBOX_LOG_FILE_LEVEL,
            then ``level``).
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level)]

    log_file = log_file or os.environ.get("DEVBOX_LOG_FILE")
    if log_file:
        file_level = _parse_level(
            log_file_level or os.environ.get("DEVBOX_LOG_FILE_LEVEL") or level
        )
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    # Errors while emitting (closed stderr, full disk) are dropped
    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _CONSOLE_DEFAULT_FORMAT, None
    for threshold, candidate, candidate_datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = candidate, candidate_datefmt
            break

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name to numeric constant; unknown names mean WARNING."""
    value = logging.getLevelName((level or "").upper())
    return value if isinstance(value, int) else logging.WARNING
