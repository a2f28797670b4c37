from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

PublishErrorKind = Literal[
    "configuration_error",
    "missing_credential",
    "no_tag_found",
    "render_error",
    "clone_error",
    "commit_error",
    "tag_error",
    "push_error",
]

PublishStep = Literal[
    "resolve_credentials",
    "resolve_tag",
    "render_artifact",
    "compute_digest",
    "build_manifest",
    "acquire_workspace",
    "write_and_commit",
    "tag",
    "push",
]


@dataclass(frozen=True, slots=True)
class PublishError:
    """Terminal failure of a publish run.

    Any PublishError means the release was not published, whatever ``step``
    the pipeline had reached.
    """

    kind: PublishErrorKind
    step: PublishStep
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        return f"{self.message} (step: {self.step})"
