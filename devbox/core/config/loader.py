"""
Configuration loader — reads provisioning profiles into domain models.

A profile is either one of the bundled YAML files (``wsl``, ``macos``,
``windows``) or a path to a YAML file of the same shape. This module
reads the YAML, validates it against the Pydantic schema, and returns
a typed Profile.
"""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path

import yaml
from pydantic import ValidationError

from devbox.core.models.profile import Profile

logger = logging.getLogger(__name__)

PROFILES_DIR = Path(__file__).resolve().parents[2] / "data" / "profiles"
PROFILE_SUFFIXES = (".yml", ".yaml")


class ConfigError(Exception):
    """Raised when a profile is missing or invalid."""


def list_profiles() -> list[str]:
    """Names of the bundled profiles."""
    if not PROFILES_DIR.is_dir():
        return []
    return sorted(p.stem for p in PROFILES_DIR.iterdir() if p.suffix in PROFILE_SUFFIXES)


def detect_profile() -> str:
    """Default profile for the current platform.

    DEVBOX_PROFILE wins; otherwise Darwin → macos, Windows → windows,
    anything else → wsl.
    """
    configured = os.environ.get("DEVBOX_PROFILE")
    if configured:
        return configured
    system = platform.system()
    if system == "Darwin":
        return "macos"
    if system == "Windows":
        return "windows"
    return "wsl"


def find_profile_file(name_or_path: str | None = None) -> Path:
    """Resolve a profile name or path to a file.

    Args:
        name_or_path: A bundled profile name, or a path to a YAML file.
            None means auto-detect.

    Raises:
        ConfigError: If nothing matches.
    """
    ref = name_or_path or detect_profile()

    candidate = Path(ref).expanduser()
    if candidate.suffix in PROFILE_SUFFIXES or os.sep in ref or "/" in ref:
        if candidate.is_file():
            return candidate
        raise ConfigError(f"Profile file not found: {candidate}")

    for suffix in PROFILE_SUFFIXES:
        bundled = PROFILES_DIR / f"{ref}{suffix}"
        if bundled.is_file():
            return bundled

    available = ", ".join(list_profiles()) or "none"
    raise ConfigError(f"Unknown profile '{ref}'. Available: {available}")


def load_profile(name_or_path: str | None = None) -> Profile:
    """Load and validate a profile.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    path = find_profile_file(name_or_path)
    logger.debug("Loading profile from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Either flat, or a "profile" header with steps, next_steps etc. beside it
    profile_data = data.get("profile", data)
    if isinstance(profile_data, dict) and profile_data is not data:
        siblings = {k: v for k, v in data.items() if k != "profile"}
        profile_data = {**siblings, **profile_data}
    if isinstance(profile_data, dict):
        profile_data.setdefault("name", path.stem)

    try:
        profile = Profile.model_validate(profile_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid profile {path}: {e}") from e

    logger.info("Loaded profile '%s' with %d steps", profile.name, len(profile.step_decls()))
    return profile
