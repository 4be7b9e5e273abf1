"""
Tests for profile loading, bundled profiles and config validation.
"""

import textwrap

import pytest

from devbox.core.config import loader
from devbox.core.config.loader import (
    ConfigError,
    detect_profile,
    find_profile_file,
    list_profiles,
    load_profile,
)
from devbox.core.models.resource import ResourceKind
from devbox.core.use_cases.config_check import check_config

MINIMAL = textwrap.dedent("""\
    profile:
      name: tiny
      description: "two steps"
    steps:
      - label: apt
        names: [git, curl]
        kind: package
        adapter: apt
      - name: uv
        kind: binary
        adapter: script
        params:
          script: curl -LsSf https://astral.sh/uv/install.sh | sh
        exports:
          - {var: PATH, value: "~/.local/bin", mode: prepend}
    next_steps:
      - reopen the terminal
""")


class TestLoader:
    def test_load_from_path(self, profile_file):
        profile = load_profile(str(profile_file(MINIMAL)))
        assert profile.name == "tiny"
        assert profile.labels() == ["apt: git", "apt: curl", "script:uv"]
        assert profile.next_steps == ["reopen the terminal"]

    def test_flat_profile(self, profile_file):
        content = textwrap.dedent("""\
            name: flat
            steps:
              - name: ~/21-Main-Projects
                kind: directory
                adapter: directory
        """)
        profile = load_profile(str(profile_file(content)))
        assert profile.name == "flat"
        assert profile.step_decls()[0].resource.kind is ResourceKind.DIRECTORY

    def test_name_defaults_to_file_stem(self, profile_file):
        content = "steps: []\n"
        profile = load_profile(str(profile_file(content, name="laptop.yml")))
        assert profile.name == "laptop"

    def test_wrapped_header_wins_over_top_level(self, profile_file):
        content = textwrap.dedent("""\
            profile:
              name: header
            name: ignored
            steps: []
            next_steps: [log in]
        """)
        profile = load_profile(str(profile_file(content)))
        assert profile.name == "header"
        assert profile.next_steps == ["log in"]

    def test_exports_parsed(self, profile_file):
        profile = load_profile(str(profile_file(MINIMAL)))
        decl = profile.step_decls()[2]
        assert decl.exports[0].mode == "prepend"
        assert decl.exports[0].value == "~/.local/bin"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_profile(str(tmp_path / "nope.yml"))

    def test_unknown_bundled_name(self):
        with pytest.raises(ConfigError, match="Unknown profile 'solaris'"):
            load_profile("solaris")

    def test_invalid_yaml(self, profile_file):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_profile(str(profile_file("steps: [unclosed\n")))

    def test_not_a_mapping(self, profile_file):
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_profile(str(profile_file("- a\n- b\n")))

    def test_step_needs_name_or_names(self, profile_file):
        content = textwrap.dedent("""\
            name: broken
            steps:
              - kind: package
                adapter: apt
        """)
        with pytest.raises(ConfigError, match="Invalid profile"):
            load_profile(str(profile_file(content)))

    def test_step_rejects_both_name_and_names(self, profile_file):
        content = textwrap.dedent("""\
            name: broken
            steps:
              - name: git
                names: [curl]
                kind: package
                adapter: apt
        """)
        with pytest.raises(ConfigError):
            load_profile(str(profile_file(content)))

    def test_unknown_kind(self, profile_file):
        content = textwrap.dedent("""\
            name: broken
            steps:
              - name: git
                kind: flatpak
                adapter: apt
        """)
        with pytest.raises(ConfigError):
            load_profile(str(profile_file(content)))


class TestProfileSelection:
    def test_bundled_profiles(self):
        assert list_profiles() == ["macos", "windows", "wsl"]

    def test_env_var_wins(self, monkeypatch):
        monkeypatch.setenv("DEVBOX_PROFILE", "macos")
        assert detect_profile() == "macos"

    @pytest.mark.parametrize(
        "system, expected",
        [("Darwin", "macos"), ("Linux", "wsl"), ("Windows", "windows")],
    )
    def test_platform_detection(self, monkeypatch, system, expected):
        monkeypatch.setattr(loader.platform, "system", lambda: system)
        assert detect_profile() == expected

    def test_find_bundled(self):
        assert find_profile_file("wsl").name == "wsl.yml"


class TestBundledProfiles:
    @pytest.mark.parametrize("name", ["wsl", "macos", "windows"])
    def test_valid(self, name):
        result = check_config(name)
        assert result.valid, result.errors
        assert result.warnings == []

    def test_wsl_order(self):
        labels = load_profile("wsl").labels()
        assert labels[0] == "apt: git"
        assert labels.index("bashrc") < labels.index("uv")
        assert labels.index("fnm") < labels.index("node") < labels.index("gemini-cli")
        assert labels.index("uv") < labels.index("uv tools: ruff")
        assert labels.index("apt-transport-https") < labels.index("gcloud")
        assert labels[-1] == "vscode: Google.geminicodeassist"

    def test_extensions_are_best_effort(self):
        for name in ("wsl", "macos", "windows"):
            for decl in load_profile(name).step_decls():
                if decl.resource.kind is ResourceKind.EXTENSION:
                    assert decl.best_effort, decl.label

    def test_block_marker(self):
        (decl,) = [d for d in load_profile("wsl").step_decls() if d.label == "bashrc"]
        assert decl.resource.param("marker") == "# === Data-Platform Structure (Company) ==="
        assert decl.resource.param("path") == "~/.bashrc"
        assert 'eval "$(fnm env)"' in decl.resource.param("body")

    @pytest.mark.parametrize("name", ["wsl", "macos", "windows"])
    def test_next_steps_loaded(self, name):
        profile = load_profile(name)
        assert profile.next_steps
        assert profile.platform == name

    def test_gcloud_upgrades(self):
        for name in ("wsl", "macos"):
            (decl,) = [d for d in load_profile(name).step_decls() if d.label == "gcloud"]
            assert decl.upgrade


class TestConfigCheck:
    def test_duplicate_labels(self, profile_file):
        content = textwrap.dedent("""\
            name: dupes
            steps:
              - {label: git, name: git, kind: package, adapter: apt}
              - {label: git, name: git, kind: package, adapter: brew}
        """)
        result = check_config(str(profile_file(content)))
        assert not result.valid
        assert any("Duplicate step labels: git" in e for e in result.errors)

    def test_unknown_adapter(self, profile_file):
        content = textwrap.dedent("""\
            name: odd
            steps:
              - {name: htop, kind: package, adapter: pacman}
        """)
        result = check_config(str(profile_file(content)))
        assert not result.valid
        assert "unknown adapter 'pacman'" in result.errors[0]

    def test_kind_mismatch(self, profile_file):
        content = textwrap.dedent("""\
            name: odd
            steps:
              - {name: ms-python.python, kind: package, adapter: vscode}
        """)
        result = check_config(str(profile_file(content)))
        assert not result.valid
        assert "handles extension, not package" in result.errors[0]

    def test_config_block_without_marker(self, profile_file):
        content = textwrap.dedent("""\
            name: odd
            steps:
              - name: block
                kind: config_block
                adapter: profile
                params: {path: ~/.bashrc, body: "export A=1"}
        """)
        result = check_config(str(profile_file(content)))
        assert not result.valid
        assert "marker" in result.errors[0]

    def test_unknown_skip_label_warns(self, profile_file):
        result = check_config(str(profile_file(MINIMAL)), skip=["apt: git", "apt: htop"])
        assert result.valid
        assert result.warnings == ["Skip label 'apt: htop' matches no step"]

    def test_upgrade_without_upgrade_action_warns(self, profile_file):
        content = textwrap.dedent("""\
            name: odd
            steps:
              - {name: ~/x, kind: directory, adapter: directory, upgrade: true}
        """)
        result = check_config(str(profile_file(content)))
        assert result.valid
        assert "has no upgrade action" in result.warnings[0]

    def test_missing_profile(self, tmp_path):
        result = check_config(str(tmp_path / "missing.yml"))
        assert not result.valid
        assert result.profile is None

    def test_to_dict(self, profile_file):
        data = check_config(str(profile_file(MINIMAL))).to_dict()
        assert data["valid"] is True
        assert data["profile_name"] == "tiny"
        assert data["step_count"] == 3
