"""Installer template rendering.

A template is a plain UTF-8 file with exactly one marker line. Rendering
replaces that line with one ``NAME = "value"`` assignment per variable and
leaves every other line byte-identical. The rendered file is written to
``<destination_dir>/<template name>``.
"""

from __future__ import annotations

import io
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from relpub.core.config import DEFAULT_MARKER
from relpub.core.result import Err, Ok, Result
from relpub.platform.files import atomic_write_bytes

__all__ = [
    "TemplateError",
    "render_template",
    "render_variable_lines",
    "split_at_marker",
]


@dataclass(frozen=True, slots=True)
class TemplateError:
    """Why a template could not be rendered.

    ``configuration_error`` means the template itself is wrong (no marker,
    several markers, not UTF-8); ``render_error`` is an I/O failure.
    """

    kind: Literal["configuration_error", "render_error"]
    message: str
    path: Path


def render_variable_lines(variables: Mapping[str, str], *, newline: str = "\n") -> list[str]:
    """One assignment line per variable, in insertion order."""
    return [f'{name} = "{value}"{newline}' for name, value in variables.items()]


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def split_at_marker(
    lines: list[str], marker: str
) -> tuple[list[str], str, list[str]] | None:
    """Split lines around the single marker line.

    Returns (before, marker_line, after), or None unless the marker occurs
    exactly once.
    """
    hits = [i for i, line in enumerate(lines) if _strip_eol(line) == marker]
    if len(hits) != 1:
        return None
    i = hits[0]
    return lines[:i], lines[i], lines[i + 1 :]


def render_template(
    template_path: Path,
    variables: Mapping[str, str],
    destination_dir: Path,
    *,
    marker: str = DEFAULT_MARKER,
) -> Result[Path, TemplateError]:
    """Render ``template_path`` into ``destination_dir``.

    Nothing is written unless the template is valid, so a marker error never
    leaves a stale or partial artifact behind.

    Returns:
        Ok(output_path) on success, Err(TemplateError) otherwise
    """
    target = destination_dir / template_path.name
    try:
        if target.resolve() == template_path.resolve():
            return Err(
                TemplateError(
                    kind="configuration_error",
                    message=f"Output would overwrite the template itself: '{template_path}'",
                    path=template_path,
                )
            )
        raw = template_path.read_bytes()
    except OSError as e:
        return Err(
            TemplateError(
                kind="render_error",
                message=f"Couldn't read template '{template_path}': {e}",
                path=template_path,
            )
        )

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        return Err(
            TemplateError(
                kind="configuration_error",
                message=f"Template '{template_path}' is not valid UTF-8: {e}",
                path=template_path,
            )
        )

    # Lines end at \n, \r\n or \r only; form feeds stay inside the line.
    lines = io.StringIO(text, newline="").readlines()
    split = split_at_marker(lines, marker)
    if split is None:
        count = sum(1 for line in lines if _strip_eol(line) == marker)
        found = "Couldn't find" if count == 0 else f"Found {count} occurrences of"
        return Err(
            TemplateError(
                kind="configuration_error",
                message=f"{found} '{marker}' in '{template_path}'.",
                path=template_path,
            )
        )

    before, marker_line, after = split
    newline = marker_line[len(_strip_eol(marker_line)) :] or "\n"
    content = "".join([*before, *render_variable_lines(variables, newline=newline), *after])

    try:
        atomic_write_bytes(target, content.encode("utf-8"))
    except OSError as e:
        return Err(
            TemplateError(
                kind="render_error",
                message=f"Couldn't write '{target}': {e}",
                path=template_path,
            )
        )
    return Ok(target)
