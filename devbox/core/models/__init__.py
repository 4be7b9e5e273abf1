"""
Domain models — Pydantic types for provisioning.

All models are re-exported here for convenient access:

    from devbox.core.models import Resource, InstallResult, Profile
"""

from devbox.core.models.environment import EnvDelta
from devbox.core.models.outcome import InstallResult, InstallStatus, PresenceResult
from devbox.core.models.profile import Profile, StepDecl, StepSpec
from devbox.core.models.resource import Resource, ResourceKind
from devbox.core.models.state import ProvisionState, RunRecord, StepState

__all__ = [
    # environment.py
    "EnvDelta",
    # outcome.py
    "InstallResult",
    "InstallStatus",
    "PresenceResult",
    # profile.py
    "Profile",
    # state.py
    "ProvisionState",
    # resource.py
    "Resource",
    "ResourceKind",
    "RunRecord",
    "StepDecl",
    "StepSpec",
    "StepState",
]
