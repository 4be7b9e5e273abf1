"""Language tooling adapters — uv, npm, fnm."""

from devbox.adapters.languages.fnm import FnmAdapter
from devbox.adapters.languages.npm import NpmAdapter
from devbox.adapters.languages.uv import UvToolAdapter

__all__ = ["FnmAdapter", "NpmAdapter", "UvToolAdapter"]
