"""Editor adapters — extension management CLIs."""

from devbox.adapters.editors.vscode import VSCodeAdapter

__all__ = ["VSCodeAdapter"]
