"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from relpub.core.errors import ErrorCode
from relpub.output.console import ConsoleProtocol, Style
from relpub.release.errors import PublishError, PublishErrorKind

EXIT_CODES: dict[PublishErrorKind, ErrorCode] = {
    "configuration_error": ErrorCode.ENV_ERROR,
    "missing_credential": ErrorCode.ENV_ERROR,
    "no_tag_found": ErrorCode.USER_ERROR,
    "render_error": ErrorCode.BUILD_ERROR,
    "clone_error": ErrorCode.NETWORK_ERROR,
    "push_error": ErrorCode.NETWORK_ERROR,
    "commit_error": ErrorCode.IO_ERROR,
    "tag_error": ErrorCode.IO_ERROR,
}


def exit_code_for(error: PublishError) -> ErrorCode:
    return EXIT_CODES.get(error.kind, ErrorCode.BUILD_ERROR)


def exit_with_error(error: PublishError, console: ConsoleProtocol) -> NoReturn:
    """Report a publish failure and exit with its code."""
    console.error(error.pretty())
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)
    console.print("release not published", Style.DIM)
    raise typer.Exit(code=int(exit_code_for(error)))
