from __future__ import annotations

from pathlib import Path

import typer

from relpub.cli.commands._helpers import exit_with_error
from relpub.cli.context import CLIContext, build_context
from relpub.core.errors import ErrorCode
from relpub.core.result import Err
from relpub.output.console import Style
from relpub.release.fingerprint import sha256_file
from relpub.release.manifest import build_manifest
from relpub.release.service import (
    RenderedInstaller,
    default_cache,
    publish_release,
    render_installer,
    resolve_release_tag,
)


def _tag_or_latest(ctx: CLIContext, tag: str | None) -> str:
    if tag:
        return tag
    resolved = resolve_release_tag(source_root=ctx.source_root)
    if isinstance(resolved, Err):
        exit_with_error(resolved.error, ctx.console)
    return resolved.value


def _render(ctx: CLIContext, tag: str) -> RenderedInstaller:
    result = render_installer(config=ctx.config, tag=tag, cache=default_cache(ctx.config))
    if isinstance(result, Err):
        exit_with_error(result.error, ctx.console)
    return result.value


def render(
    tag: str | None = typer.Option(None, "--tag", help="Release tag (default: latest tag)"),
) -> None:
    """Render the versioned installer script and print its SHA-256."""
    ctx = build_context()
    rendered = _render(ctx, _tag_or_latest(ctx, tag))
    ctx.console.success(f"{rendered.path}")
    ctx.console.print(f"sha256 {rendered.digest}")


def manifest(
    tag: str | None = typer.Option(None, "--tag", help="Release tag (default: latest tag)"),
    out: Path | None = typer.Option(None, "--out", help="Write the formula to a file"),
) -> None:
    """Print (or write) the formula for a release without publishing it."""
    ctx = build_context()
    release_tag = _tag_or_latest(ctx, tag)
    rendered = _render(ctx, release_tag)
    content = build_manifest(rendered.version, release_tag, rendered.digest, ctx.config.formula)

    if out is None:
        typer.echo(content, nl=False)
        return

    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(content, encoding="utf-8")
    except OSError as e:
        ctx.console.error(f"couldn't write {out}: {e}")
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))
    ctx.console.success(f"wrote {out}")


def fingerprint(
    path: Path = typer.Argument(..., help="File to hash"),
) -> None:
    """Print the SHA-256 of a file."""
    try:
        digest = sha256_file(path)
    except OSError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))
    typer.echo(f"{digest}  {path}")


def publish() -> None:
    """Render the installer and publish the formula for the latest tag."""
    ctx = build_context()
    ctx.console.header(f"Publishing {ctx.config.release.project}")
    result = publish_release(config=ctx.config, source_root=ctx.source_root, console=ctx.console)
    if isinstance(result, Err):
        exit_with_error(result.error, ctx.console)

    outcome = result.value
    ctx.console.print(f"tag: {outcome.tag}", Style.DIM)
    ctx.console.print(f"sha256: {outcome.digest}", Style.DIM)
