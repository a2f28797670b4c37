"""Release publication pipeline.

``publish_release`` runs the steps strictly in order and stops at the first
failure:

    resolve_credentials -> resolve_tag -> render_artifact -> compute_digest
    -> build_manifest -> acquire_workspace -> write_and_commit -> tag -> push

The ephemeral clone is removed on every path once it has been acquired.
Nothing is rolled back on the remote: a failed push simply leaves the release
unpublished.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from relpub.core.config import Config
from relpub.core.result import Err, Ok, Result
from relpub.git.repository import GitError, GitIdentity, Repository, redact
from relpub.output.console import ConsoleProtocol, Style
from relpub.release.cache import JsonCacheStore, RenderCache
from relpub.release.errors import PublishError, PublishErrorKind, PublishStep
from relpub.release.fingerprint import sha256_file
from relpub.release.manifest import build_manifest
from relpub.release.template import TemplateError
from relpub.release.workspace import EphemeralWorkspace

__all__ = [
    "PublishOutcome",
    "RenderedInstaller",
    "commit_message",
    "default_cache",
    "installer_variables",
    "publish_manifest",
    "publish_release",
    "release_version",
    "render_installer",
    "resolve_release_tag",
    "resolve_token",
]

REMOTE = "origin"


@dataclass(frozen=True, slots=True)
class RenderedInstaller:
    path: Path
    digest: str
    version: str


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    tag: str
    version: str
    artifact: Path
    digest: str
    manifest_file: str
    commit_message: str


def _git_failure(
    kind: PublishErrorKind,
    step: PublishStep,
    e: GitError,
    *,
    hint: str | None = None,
) -> PublishError:
    return PublishError(
        kind=kind,
        step=step,
        message=f"git {e.command} failed: {e.message}",
        hint=hint,
    )


def _render_failure(e: TemplateError) -> PublishError:
    return PublishError(kind=e.kind, step="render_artifact", message=e.message)


def default_cache(config: Config) -> RenderCache:
    """Render cache persisted in the configured cache dir."""
    return RenderCache(JsonCacheStore(config.installer.cache_dir))


def resolve_token(*, env: Mapping[str, str], name: str) -> Result[str, PublishError]:
    token = (env.get(name) or "").strip()
    if not token:
        return Err(
            PublishError(
                kind="missing_credential",
                step="resolve_credentials",
                message=f"Couldn't find GitHub token in `{name}`",
                hint=f"Export {name} with push access to the distribution repo.",
            )
        )
    return Ok(token)


def resolve_release_tag(*, source_root: Path) -> Result[str, PublishError]:
    """Latest tag reachable from HEAD of the source checkout."""
    result = Repository(source_root).latest_tag()
    if isinstance(result, Err):
        return Err(
            PublishError(
                kind="no_tag_found",
                step="resolve_tag",
                message=f"Couldn't read tags in {source_root}: {result.error.message}",
            )
        )
    if result.value is None:
        return Err(
            PublishError(
                kind="no_tag_found",
                step="resolve_tag",
                message="No tag found in this repository.",
                hint="Tag the release commit (e.g. git tag v1.2.3) then retry.",
            )
        )
    return Ok(result.value)


def release_version(config: Config, tag: str) -> str:
    """Configured version, or the tag without its leading "v"."""
    if config.release.version:
        return config.release.version
    return tag[1:] if tag[:1] in ("v", "V") and tag[1:2].isdigit() else tag


def installer_variables(config: Config, *, version: str, tag: str) -> dict[str, str]:
    """Configured installer variables with {version} and {tag} filled in."""
    return {
        name: value.replace("{version}", version).replace("{tag}", tag)
        for name, value in config.installer.variables.items()
    }


def commit_message(config: Config, tag: str) -> str:
    return f"Updating to {config.release.project} {tag}"


def render_installer(
    *,
    config: Config,
    tag: str,
    cache: RenderCache,
) -> Result[RenderedInstaller, PublishError]:
    """Render (or reuse) the versioned installer and fingerprint it."""
    version = release_version(config, tag)
    variables = installer_variables(config, version=version, tag=tag)

    rendered = cache.get_or_render(
        config.installer.template,
        variables,
        config.installer.output_dir,
        marker=config.installer.marker,
    )
    if isinstance(rendered, Err):
        return rendered.map_err(_render_failure)

    try:
        digest = sha256_file(rendered.value)
    except OSError as e:
        return Err(
            PublishError(
                kind="render_error",
                step="compute_digest",
                message=f"Couldn't read {rendered.value}: {e}",
            )
        )

    return Ok(RenderedInstaller(path=rendered.value, digest=digest, version=version))


def _write_and_commit(
    *,
    repo: Repository,
    manifest_file: str,
    manifest: str,
    message: str,
    identity: GitIdentity,
    console: ConsoleProtocol,
) -> Result[None, PublishError]:
    target = repo.path / manifest_file
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(manifest, encoding="utf-8")
    except OSError as e:
        return Err(
            PublishError(
                kind="commit_error",
                step="write_and_commit",
                message=f"Couldn't write {manifest_file}: {e}",
            )
        )

    console.print(f"git add -- {manifest_file}", Style.DIM)
    added = repo.add([manifest_file])
    if isinstance(added, Err):
        return Err(_git_failure("commit_error", "write_and_commit", added.error))

    console.print(f"git commit -m {message!r}", Style.DIM)
    committed = repo.commit(message, identity)
    if isinstance(committed, Err):
        return Err(
            _git_failure(
                "commit_error",
                "write_and_commit",
                committed.error,
                hint="The manifest may be identical to the published one.",
            )
        )
    return Ok(None)


def publish_manifest(
    *,
    config: Config,
    manifest: str,
    tag: str,
    token: str,
    console: ConsoleProtocol,
) -> Result[None, PublishError]:
    """Clone the distribution repo, commit the manifest, tag and push.

    The clone lives in an ephemeral workspace that is removed whatever happens.
    """
    publish = config.publish
    identity = GitIdentity(name=publish.bot.name, email=publish.bot.email)
    message = commit_message(config, tag)
    workspace = EphemeralWorkspace(publish.workspace_dir)

    try:
        dest = workspace.acquire()
    except OSError as e:
        return Err(
            PublishError(
                kind="clone_error",
                step="acquire_workspace",
                message=f"Couldn't create a temporary workspace: {e}",
            )
        )

    try:
        console.print(f"git clone {publish.repo_url} {dest}", Style.DIM)
        cloned = Repository.clone(publish.repo_url, dest, token=token)
        if isinstance(cloned, Err):
            return Err(
                _git_failure(
                    "clone_error",
                    "acquire_workspace",
                    cloned.error,
                    hint=f"Check that {publish.token_env} can read {publish.repo_url}.",
                )
            )
        repo = cloned.value

        committed = _write_and_commit(
            repo=repo,
            manifest_file=publish.manifest_file,
            manifest=manifest,
            message=message,
            identity=identity,
            console=console,
        )
        if isinstance(committed, Err):
            return committed

        console.print(f"git tag -a {tag}", Style.DIM)
        tagged = repo.tag(tag, message, identity)
        if isinstance(tagged, Err):
            return Err(
                _git_failure(
                    "tag_error",
                    "tag",
                    tagged.error,
                    hint=f"Does {tag} already exist in {publish.repo_url}?",
                )
            )

        console.print(f"git push {REMOTE} {publish.branch} {tag}", Style.DIM)
        pushed = repo.push(REMOTE, [publish.branch, tag])
        if isinstance(pushed, Err):
            return Err(
                _git_failure(
                    "push_error",
                    "push",
                    pushed.error,
                    hint=(
                        f"{publish.repo_url} was left unpublished; "
                        f"push {publish.manifest_file} and tag {tag} manually or rerun."
                    ),
                )
            )
        return Ok(None)
    finally:
        try:
            workspace.release()
        except OSError as e:
            console.warning(f"couldn't remove temporary workspace {dest}: {e}")


def publish_release(
    *,
    config: Config,
    source_root: Path,
    console: ConsoleProtocol,
    env: Mapping[str, str] | None = None,
    cache: RenderCache | None = None,
) -> Result[PublishOutcome, PublishError]:
    """Render, fingerprint and publish the formula for the latest tag."""
    token_result = resolve_token(
        env=os.environ if env is None else env,
        name=config.publish.token_env,
    )
    if isinstance(token_result, Err):
        return token_result
    token = token_result.value
    secrets = (token,)

    tag_result = resolve_release_tag(source_root=source_root)
    if isinstance(tag_result, Err):
        return tag_result
    tag = tag_result.value
    console.print(f"release tag: {tag}", Style.DIM)

    installer = render_installer(
        config=config,
        tag=tag,
        cache=cache if cache is not None else default_cache(config),
    )
    if isinstance(installer, Err):
        return installer
    rendered = installer.value
    console.print(f"installer: {rendered.path} (sha256 {rendered.digest})", Style.DIM)

    manifest = build_manifest(rendered.version, tag, rendered.digest, config.formula)

    published = publish_manifest(
        config=config,
        manifest=manifest,
        tag=tag,
        token=token,
        console=console,
    )
    if isinstance(published, Err):
        return published.map_err(
            lambda e: PublishError(
                kind=e.kind,
                step=e.step,
                message=redact(e.message, secrets),
                hint=redact(e.hint, secrets) if e.hint else None,
            )
        )

    console.success(f"published {config.publish.manifest_file} for {tag}")
    return Ok(
        PublishOutcome(
            tag=tag,
            version=rendered.version,
            artifact=rendered.path,
            digest=rendered.digest,
            manifest_file=config.publish.manifest_file,
            commit_message=commit_message(config, tag),
        )
    )
