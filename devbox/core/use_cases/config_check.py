"""
Config check use case — validate a profile and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from devbox.adapters.base import Adapter
from devbox.adapters.registry import AdapterRegistry, default_registry
from devbox.core.config.loader import ConfigError, find_profile_file, load_profile
from devbox.core.models.profile import Profile


@dataclass
class ConfigCheckResult:
    """Result of profile validation."""

    valid: bool = False
    profile: Profile | None = None
    profile_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "profile_path": str(self.profile_path) if self.profile_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "profile_name": self.profile.name if self.profile else None,
            "step_count": len(self.profile.step_decls()) if self.profile else 0,
        }


def check_config(
    profile_ref: str | None = None,
    skip: list[str] | None = None,
    registry: AdapterRegistry | None = None,
) -> ConfigCheckResult:
    """Validate a profile and report issues.

    Args:
        profile_ref: Bundled profile name or path. None = auto-detect.
        skip: Skip labels to check against the profile's steps.
        registry: Registry to check adapter names against
            (default: every built-in adapter).

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    try:
        result.profile_path = find_profile_file(profile_ref)
        profile = load_profile(str(result.profile_path))
        result.profile = profile
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    if registry is None:
        registry = default_registry()

    decls = profile.step_decls()
    if not decls:
        result.warnings.append("No steps defined. The profile has nothing to provision.")

    labels = [d.label for d in decls]
    dupes = {label for label in labels if labels.count(label) > 1}
    if dupes:
        result.errors.append(f"Duplicate step labels: {', '.join(sorted(dupes))}")

    for decl in decls:
        resource = decl.resource
        adapter = registry.get(resource.adapter)
        if adapter is None:
            result.errors.append(f"Step '{decl.label}': unknown adapter '{resource.adapter}'")
            continue

        ok, msg = adapter.validate(resource)
        if not ok:
            result.errors.append(f"Step '{decl.label}': {msg}")

        if decl.upgrade and type(adapter).upgrade is Adapter.upgrade:
            result.warnings.append(
                f"Step '{decl.label}': adapter '{adapter.name}' has no upgrade action"
            )

    for label in skip or []:
        if label not in labels:
            result.warnings.append(f"Skip label '{label}' matches no step")

    result.valid = len(result.errors) == 0
    return result
