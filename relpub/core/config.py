"""Typed configuration loading and access.

This module provides dataclasses for the relpub.toml structure. Relative
paths are resolved against the directory holding the config file, so a
release can be reproduced from any working directory.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath, PureWindowsPath

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_str_map, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_MARKER",
    "DEFAULT_TOKEN_ENV",
    "BotIdentity",
    "Config",
    "ConfigError",
    "FormulaConfig",
    "InstallerConfig",
    "PublishConfig",
    "ReleaseConfig",
    "load_config",
]

CONFIG_FILE_NAME = "relpub.toml"

DEFAULT_MARKER = "# INSERT_INSTALL_VARIABLES"
DEFAULT_TOKEN_ENV = "RELPUB_GITHUB_TOKEN"
DEFAULT_BOT_NAME = "Releasebot"
DEFAULT_BOT_EMAIL = "releasebot@users.noreply.github.com"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class BotIdentity:
    """Author/committer used for commits and tags in the distribution repo."""

    name: str = DEFAULT_BOT_NAME
    email: str = DEFAULT_BOT_EMAIL


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Source project metadata.

    ``version`` is optional: when unset it is derived from the release tag.
    """

    project: str
    version: str | None = None


@dataclass(frozen=True, slots=True)
class InstallerConfig:
    """Installer template rendering settings."""

    template: Path
    output_dir: Path
    cache_dir: Path
    marker: str = DEFAULT_MARKER
    # Ordered; values may contain {version} / {tag} placeholders.
    variables: dict[str, str] = field(default_factory=dict[str, str])


@dataclass(frozen=True, slots=True)
class FormulaConfig:
    """Fields of the generated formula that vary per project."""

    class_name: str
    description: str
    homepage: str
    repo: str  # owner/name hosting the release downloads
    artifact: str = "install.py"
    # Long-running command to register as a launchd service, if any.
    service_command: str | None = None

    def download_url(self, tag_name: str) -> str:
        return f"https://github.com/{self.repo}/releases/download/{tag_name}/{self.artifact}"


@dataclass(frozen=True, slots=True)
class PublishConfig:
    """Distribution repository settings."""

    repo_url: str
    manifest_file: str
    branch: str = "master"
    token_env: str = DEFAULT_TOKEN_ENV
    bot: BotIdentity = field(default_factory=BotIdentity)
    # Parent for the ephemeral clone; system temp dir when None.
    workspace_dir: Path | None = None


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    release: ReleaseConfig
    installer: InstallerConfig
    formula: FormulaConfig
    publish: PublishConfig

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, base_dir: Path) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: if a required key is missing or has the wrong type.
        """
        release: StrDict = get_table(data, "release") or {}
        installer: StrDict = get_table(data, "installer") or {}
        formula: StrDict = get_table(data, "formula") or {}
        publish: StrDict = get_table(data, "publish") or {}

        def required(table: StrDict, section: str, key: str) -> str:
            value = get_str(table, key)
            if value is None:
                raise ValueError(f"missing required key [{section}].{key}")
            return value

        def path_of(raw: str) -> Path:
            p = Path(raw).expanduser()
            return p if p.is_absolute() else base_dir / p

        def inside_repo(section: str, key: str, raw: str) -> str:
            parts = PurePosixPath(raw.replace("\\", "/")).parts
            if PurePosixPath(raw).is_absolute() or PureWindowsPath(raw).anchor or ".." in parts:
                raise ValueError(
                    f"[{section}].{key} must be a relative path inside the repository: {raw!r}"
                )
            return raw

        project = required(release, "release", "project")

        variables = get_str_map(installer, "variables")
        if variables is None and "variables" in installer:
            raise ValueError("[installer.variables] must map names to strings")

        template = path_of(required(installer, "installer", "template"))
        output_dir = path_of(get_str(installer, "output_dir") or "target")
        cache_raw = get_str(installer, "cache_dir")
        workspace_raw = get_str(publish, "workspace_dir")

        return cls(
            release=ReleaseConfig(
                project=project,
                version=get_str(release, "version"),
            ),
            installer=InstallerConfig(
                template=template,
                output_dir=output_dir,
                cache_dir=path_of(cache_raw) if cache_raw else output_dir / ".relpub-cache",
                marker=get_str(installer, "marker") or DEFAULT_MARKER,
                variables=variables or {},
            ),
            formula=FormulaConfig(
                class_name=get_str(formula, "class_name") or project.capitalize(),
                description=get_str(formula, "description") or project,
                homepage=required(formula, "formula", "homepage"),
                repo=required(formula, "formula", "repo"),
                artifact=get_str(formula, "artifact") or template.name,
                service_command=get_str(formula, "service_command"),
            ),
            publish=PublishConfig(
                repo_url=required(publish, "publish", "repo_url"),
                manifest_file=inside_repo(
                    "publish", "manifest_file", required(publish, "publish", "manifest_file")
                ),
                branch=get_str(publish, "branch") or "master",
                token_env=get_str(publish, "token_env") or DEFAULT_TOKEN_ENV,
                bot=BotIdentity(
                    name=get_str(publish, "bot_name") or DEFAULT_BOT_NAME,
                    email=get_str(publish, "bot_email") or DEFAULT_BOT_EMAIL,
                ),
                workspace_dir=path_of(workspace_raw) if workspace_raw else None,
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relpub.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        config = Config.from_dict(result.value, base_dir=path.resolve().parent)
        return Ok(config)
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))
