"""Tests for relpub.core.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from relpub.core.config import DEFAULT_MARKER, DEFAULT_TOKEN_ENV, Config, load_config
from relpub.core.result import Err, Ok

MINIMAL = """
[release]
project = "bloop"

[installer]
template = "bin/install.py"

[formula]
homepage = "https://github.com/scalacenter/bloop"
repo = "scalacenter/bloop"

[publish]
repo_url = "https://github.com/scalacenter/homebrew-bloop.git"
manifest_file = "bloop.rb"
"""


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "relpub.toml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_minimal_config_gets_defaults(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, MINIMAL))

        assert isinstance(result, Ok)
        config = result.value
        root = tmp_path.resolve()
        assert config.release.project == "bloop"
        assert config.release.version is None
        assert config.installer.template == root / "bin" / "install.py"
        assert config.installer.output_dir == root / "target"
        assert config.installer.cache_dir == root / "target" / ".relpub-cache"
        assert config.installer.marker == DEFAULT_MARKER
        assert config.installer.variables == {}
        assert config.formula.class_name == "Bloop"
        assert config.formula.artifact == "install.py"
        assert config.formula.service_command is None
        assert config.publish.branch == "master"
        assert config.publish.token_env == DEFAULT_TOKEN_ENV
        assert config.publish.workspace_dir is None

    def test_variables_keep_declaration_order(self, tmp_path: Path) -> None:
        content = MINIMAL.replace(
            '[formula]',
            '[installer.variables]\nZETA = "1"\nALPHA = "{version}"\nMID = " spaced "\n\n[formula]',
        )
        result = load_config(_write(tmp_path, content))

        assert isinstance(result, Ok)
        variables = result.value.installer.variables
        assert list(variables) == ["ZETA", "ALPHA", "MID"]
        assert variables["MID"] == " spaced "

    def test_full_publish_section(self, tmp_path: Path) -> None:
        content = MINIMAL.replace(
            'manifest_file = "bloop.rb"',
            'manifest_file = "Formula/bloop.rb"\n'
            'branch = "main"\n'
            'token_env = "BLOOPOID_GITHUB_TOKEN"\n'
            'bot_name = "Bloopoid"\n'
            'bot_email = "bloop@trashmail.ws"\n'
            'workspace_dir = "/tmp/relpub-ws"',
        )
        result = load_config(_write(tmp_path, content))

        assert isinstance(result, Ok)
        publish = result.value.publish
        assert publish.manifest_file == "Formula/bloop.rb"
        assert publish.branch == "main"
        assert publish.token_env == "BLOOPOID_GITHUB_TOKEN"
        assert publish.bot.name == "Bloopoid"
        assert publish.bot.email == "bloop@trashmail.ws"
        assert publish.workspace_dir == Path("/tmp/relpub-ws")

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "nope.toml")

        assert isinstance(result, Err)
        assert "not found" in result.error.message

    def test_invalid_toml(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, "[release\nproject="))

        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message

    def test_missing_required_key(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, MINIMAL.replace('repo = "scalacenter/bloop"', "")))

        assert isinstance(result, Err)
        assert "[formula].repo" in result.error.message

    def test_non_string_variable_rejected(self, tmp_path: Path) -> None:
        content = MINIMAL.replace("[formula]", "[installer.variables]\nPORT = 8212\n\n[formula]")
        result = load_config(_write(tmp_path, content))

        assert isinstance(result, Err)
        assert "installer.variables" in result.error.message

    @pytest.mark.parametrize(
        "manifest_file",
        [
            "/tmp/outside/bloop.rb",
            "../bloop.rb",
            "Formula/../../bloop.rb",
            "..\\bloop.rb",
            "C:\\tap\\bloop.rb",
        ],
    )
    def test_manifest_file_must_stay_inside_repository(
        self, tmp_path: Path, manifest_file: str
    ) -> None:
        content = MINIMAL.replace(
            'manifest_file = "bloop.rb"', f"manifest_file = '{manifest_file}'"
        )
        result = load_config(_write(tmp_path, content))

        assert isinstance(result, Err)
        assert "[publish].manifest_file" in result.error.message

    def test_manifest_file_in_subdirectory(self, tmp_path: Path) -> None:
        content = MINIMAL.replace(
            'manifest_file = "bloop.rb"', 'manifest_file = "Formula/bloop.rb"'
        )
        result = load_config(_write(tmp_path, content))

        assert isinstance(result, Ok)
        assert result.value.publish.manifest_file == "Formula/bloop.rb"


def test_download_url_uses_tag_and_artifact() -> None:
    config = Config.from_dict(
        {
            "release": {"project": "bloop"},
            "installer": {"template": "install.py"},
            "formula": {"homepage": "https://x", "repo": "scalacenter/bloop"},
            "publish": {"repo_url": "https://x/tap.git", "manifest_file": "bloop.rb"},
        },
        base_dir=Path("/src"),
    )
    assert (
        config.formula.download_url("v1.2.3")
        == "https://github.com/scalacenter/bloop/releases/download/v1.2.3/install.py"
    )
