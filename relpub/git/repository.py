"""Git repository abstraction.

This module provides the Repository class for the git operations a release
needs: reading the latest tag of the source checkout, and cloning, committing,
tagging and pushing the distribution repository.
All operations return Result types for proper error handling.

Usage:
    match Repository.clone(url, dest, token=token):
        case Ok(repo):
            repo.add(["formula.rb"])
        case Err(e):
            print(f"clone failed: {e.message}")
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from relpub.core.result import Err, Ok, Result
from relpub.platform.process import ProcessError
from relpub.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"clone", "fetch", "pull", "push"})

# stderr fragments git prints when HEAD has no reachable tag
_NO_TAG_MARKERS = ("No names found", "No tags can describe", "cannot describe anything")

REDACTED = "***"
MIN_SECRET_LENGTH = 8
_URL_USERINFO = re.compile(r"([A-Za-z][A-Za-z0-9+.-]*://)([^@/\s]+)@")

__all__ = [
    "GitError",
    "GitIdentity",
    "Repository",
    "authenticated_url",
    "redact",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message (credentials already redacted)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class GitIdentity:
    """Author and committer identity passed with ``-c user.*``."""

    name: str
    email: str

    def config_args(self) -> list[str]:
        return ["-c", f"user.name={self.name}", "-c", f"user.email={self.email}"]


def authenticated_url(url: str, token: str | None) -> str:
    """Embed a token into an https remote URL.

    Non-https URLs (file paths, ssh) are returned unchanged since they
    authenticate some other way.
    """
    if not token:
        return url
    parts = urlsplit(url)
    if parts.scheme != "https":
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"x-access-token:{quote(token, safe='')}@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def _redact_userinfo(match: re.Match[str], secrets: tuple[str, ...]) -> str:
    scheme, userinfo = match.group(1), match.group(2)
    user, sep, _password = userinfo.partition(":")
    if sep:
        return f"{scheme}{user}:{REDACTED}@"
    if user in secrets or unquote(user) in secrets:
        return f"{scheme}{REDACTED}@"
    return match.group(0)


def redact(text: str, secrets: Iterable[str]) -> str:
    """Scrub credentials from text.

    Passwords in URL userinfo are always replaced. Secrets of at least
    ``MIN_SECRET_LENGTH`` characters are also replaced wherever they appear,
    raw and URL-quoted.
    """
    known = tuple(s for s in secrets if s)
    text = _URL_USERINFO.sub(lambda m: _redact_userinfo(m, known), text)
    for secret in known:
        if len(secret) < MIN_SECRET_LENGTH:
            continue
        text = text.replace(secret, REDACTED)
        quoted = quote(secret, safe="")
        if quoted != secret:
            text = text.replace(quoted, REDACTED)
    return text


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path, *, secrets: Sequence[str] = ()) -> None:
        """Initialize repository.

        Args:
            path: Path to repository root (containing .git)
            secrets: Values to scrub from error messages (e.g. the clone token)
        """
        self.path = path
        self._secrets = tuple(s for s in secrets if s)

    @classmethod
    def clone(
        cls,
        url: str,
        dest: Path,
        *,
        token: str | None = None,
    ) -> Result[Repository, GitError]:
        """Clone ``url`` into ``dest`` (which may exist but must be empty).

        The token is embedded in the remote URL so later pushes to ``origin``
        authenticate the same way.

        Returns:
            Ok(Repository) on success
            Err(GitError) on network/auth failure
        """
        secrets = (token,) if token else ()
        dest.parent.mkdir(parents=True, exist_ok=True)
        cmd = ["git", "clone", "--quiet", authenticated_url(url, token), str(dest)]
        result = run_process(cmd, cwd=dest.parent, timeout=_GIT_NETWORK_TIMEOUT_SECONDS)
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command="clone",
                        message=redact(e.stderr.strip() or "git clone failed", secrets),
                        returncode=e.returncode,
                    )
                )
            case Ok(_):
                return Ok(cls(dest, secrets=secrets))

    def latest_tag(self) -> Result[str | None, GitError]:
        """Most recent tag reachable from HEAD.

        Returns:
            Ok(tag) when one exists, Ok(None) when HEAD has no reachable tag
            Err(GitError) when git itself fails
        """
        result = self._run(["describe", "--tags", "--abbrev=0"])
        match result:
            case Err(e):
                if any(m in e.stderr for m in _NO_TAG_MARKERS):
                    return Ok(None)
                return Err(self._error("describe", e, "git describe failed"))
            case Ok(stdout):
                return Ok(stdout.strip() or None)

    def add(self, paths: Sequence[str]) -> Result[None, GitError]:
        """Stage exactly the given paths (relative to the repo root)."""
        result = self._run(["add", "--", *paths])
        if isinstance(result, Err):
            return Err(self._error("add", result.error, "git add failed"))
        return Ok(None)

    def commit(self, message: str, identity: GitIdentity) -> Result[None, GitError]:
        """Commit the staged changes as ``identity`` (author and committer)."""
        result = self._run(["commit", "--quiet", "-m", message], identity=identity)
        if isinstance(result, Err):
            return Err(self._error("commit", result.error, "git commit failed"))
        return Ok(None)

    def tag(self, name: str, message: str, identity: GitIdentity) -> Result[None, GitError]:
        """Create an annotated tag on HEAD."""
        result = self._run(["tag", "-a", name, "-m", message], identity=identity)
        if isinstance(result, Err):
            return Err(self._error("tag", result.error, "git tag failed"))
        return Ok(None)

    def push(self, remote: str, refs: Sequence[str]) -> Result[None, GitError]:
        """Push ``refs`` (branches and/or tags) to ``remote``."""
        result = self._run(["push", "--quiet", remote, *refs])
        if isinstance(result, Err):
            return Err(self._error("push", result.error, "git push failed"))
        return Ok(None)

    def _run(
        self,
        args: list[str],
        *,
        identity: GitIdentity | None = None,
    ) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        config = identity.config_args() if identity else []
        return run_process(
            ["git", "-C", str(self.path), *config, *args], cwd=self.path, timeout=timeout
        )

    def _error(self, command: str, e: ProcessError, fallback: str) -> GitError:
        message = e.stderr.strip() or e.stdout.strip() or fallback
        return GitError(
            command=command,
            message=redact(message, self._secrets),
            returncode=e.returncode,
        )
