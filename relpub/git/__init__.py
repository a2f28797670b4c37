"""Git operations module.

Usage:
    from relpub.git import Repository

    repo = Repository(Path("/path/to/source"))
    tag = repo.latest_tag()
"""

from relpub.git.repository import (
    GitError,
    GitIdentity,
    Repository,
    authenticated_url,
    redact,
)

__all__ = [
    "GitError",
    "GitIdentity",
    "Repository",
    "authenticated_url",
    "redact",
]
