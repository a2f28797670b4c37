from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from relpub.core.config import CONFIG_FILE_NAME, Config, load_config
from relpub.core.errors import ErrorCode
from relpub.core.result import Err
from relpub.output.console import ConsoleProtocol, RichConsole

CONFIG_ENV = "RELPUB_CONFIG"


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    config_path: Path
    source_root: Path  # git checkout the release tag is read from
    console: ConsoleProtocol


def find_config_path() -> Path | None:
    """RELPUB_CONFIG if set, else the nearest relpub.toml from cwd upwards."""
    env = os.environ.get(CONFIG_ENV)
    if env:
        return Path(env).expanduser().resolve()

    cwd = Path.cwd().resolve()
    for parent in (cwd, *cwd.parents):
        candidate = parent / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def build_context(*, console: ConsoleProtocol | None = None) -> CLIContext:
    config_path = find_config_path()
    if config_path is None:
        typer.echo(f"error: no {CONFIG_FILE_NAME} found (use --config)", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    result = load_config(config_path)
    if isinstance(result, Err):
        typer.echo(f"error: {result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        config=result.value,
        config_path=config_path,
        source_root=config_path.parent,
        console=console if console is not None else RichConsole(),
    )
