"""
Shared test fixtures and configuration.
"""

import os
import stat
from collections.abc import Callable
from pathlib import Path

import pytest

from devbox.core.engine.environment import Environment


@pytest.fixture(autouse=True)
def _isolate_devbox_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep DEVBOX_* settings from the developer's shell out of tests."""
    for var in ("DEVBOX_PROFILE", "DEVBOX_LOG_LEVEL", "DEVBOX_LOG_FILE", "DEVBOX_LOG_FILE_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DEVBOX_STATE_DIR", str(tmp_path / "devbox-state"))


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """A throwaway HOME directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def env(home: Path, bin_dir: Path) -> Environment:
    """A run environment whose PATH only holds the fake bin directory."""
    return Environment({"HOME": str(home), "PATH": str(bin_dir)})


@pytest.fixture
def fake_tool(bin_dir: Path) -> Callable[[str], Path]:
    """Create an executable placeholder so ``env.which(name)`` finds it."""

    def _make(name: str) -> Path:
        path = bin_dir / name
        path.write_text("#!/bin/sh\nexit 0\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def profile_file(tmp_path: Path) -> Callable[[str], Path]:
    """Write a profile YAML into tmp_path and return its path."""

    def _write(content: str, name: str = "profile.yml") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    if os.name == "nt":
        skip = pytest.mark.skip(reason="fake executables need a POSIX PATH lookup")
        for item in items:
            if "fake_tool" in getattr(item, "fixturenames", ()):
                item.add_marker(skip)
