"""Package manager adapters — apt, brew, winget."""

from devbox.adapters.packages.apt import AptAdapter
from devbox.adapters.packages.brew import BrewAdapter
from devbox.adapters.packages.winget import WingetAdapter

__all__ = ["AptAdapter", "BrewAdapter", "WingetAdapter"]
