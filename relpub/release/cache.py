"""Content-addressed memoization of template rendering.

The cache key covers everything that affects the rendered bytes: the template
content, the marker, the destination path and the variable set (names, values
and order). Bumping a version without touching the template therefore always
re-renders.

Stores are injectable: ``MemoryCacheStore`` for tests and one-off runs,
``JsonCacheStore`` for an index persisted in the configured cache dir.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Protocol

from relpub.core.config import DEFAULT_MARKER
from relpub.core.result import Err, Ok, Result
from relpub.platform.files import atomic_write_text
from relpub.release.template import TemplateError, render_template

__all__ = [
    "CacheStore",
    "JsonCacheStore",
    "MemoryCacheStore",
    "RenderCache",
    "render_cache_key",
]

_KEY_VERSION = b"relpub-render-v1"
_INDEX_FILE = "render-cache.json"

Renderer = Callable[..., Result[Path, TemplateError]]


def render_cache_key(
    template_bytes: bytes,
    variables: Mapping[str, str],
    destination: Path,
    marker: str,
) -> str:
    """Hex signature of one render invocation."""
    h = hashlib.sha256(_KEY_VERSION)
    for part in (
        template_bytes,
        marker.encode("utf-8"),
        str(destination).encode("utf-8"),
        json.dumps(list(variables.items()), ensure_ascii=False).encode("utf-8"),
    ):
        # length-prefix so adjacent fields can't run into each other
        h.update(len(part).to_bytes(8, "big"))
        h.update(part)
    return h.hexdigest()


class CacheStore(Protocol):
    """Signature -> rendered output path."""

    def get(self, key: str) -> Path | None: ...

    def put(self, key: str, output: Path) -> None:
        """Record ``output`` for ``key``, dropping older keys for the same output."""
        ...


class MemoryCacheStore:
    """In-process store; forgotten when the process exits."""

    def __init__(self) -> None:
        self._entries: dict[str, Path] = {}

    def get(self, key: str) -> Path | None:
        return self._entries.get(key)

    def put(self, key: str, output: Path) -> None:
        self._entries = {k: v for k, v in self._entries.items() if v != output}
        self._entries[key] = output

    def __len__(self) -> int:
        return len(self._entries)


class JsonCacheStore:
    """Store persisted as a JSON index inside ``cache_dir``.

    A missing or corrupted index is treated as empty.
    """

    def __init__(self, cache_dir: Path) -> None:
        self.index_path = cache_dir / _INDEX_FILE

    def _load(self) -> dict[str, str]:
        if not self.index_path.exists():
            return {}
        try:
            data = json.loads(self.index_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError):
            return {}
        entries = data.get("entries") if isinstance(data, dict) else None
        if not isinstance(entries, dict):
            return {}
        return {k: v for k, v in entries.items() if isinstance(k, str) and isinstance(v, str)}

    def get(self, key: str) -> Path | None:
        value = self._load().get(key)
        return Path(value) if value is not None else None

    def put(self, key: str, output: Path) -> None:
        entries = {k: v for k, v in self._load().items() if v != str(output)}
        entries[key] = str(output)
        payload = {"version": 1, "entries": entries}
        atomic_write_text(self.index_path, json.dumps(payload, indent=2, sort_keys=True))


class RenderCache:
    """Render a template only when its inputs changed since the last render."""

    def __init__(self, store: CacheStore, *, renderer: Renderer = render_template) -> None:
        self.store = store
        self._renderer = renderer

    def get_or_render(
        self,
        template_path: Path,
        variables: Mapping[str, str],
        destination_dir: Path,
        *,
        marker: str = DEFAULT_MARKER,
    ) -> Result[Path, TemplateError]:
        """Return the rendered artifact path, rendering on a cache miss.

        A hit whose output file has since disappeared counts as a miss.
        """
        try:
            template_bytes = template_path.read_bytes()
        except OSError as e:
            return Err(
                TemplateError(
                    kind="render_error",
                    message=f"Couldn't read template '{template_path}': {e}",
                    path=template_path,
                )
            )

        destination = (destination_dir / template_path.name).resolve()
        key = render_cache_key(template_bytes, variables, destination, marker)

        cached = self.store.get(key)
        if cached is not None and cached.is_file():
            return Ok(cached)

        result = self._renderer(template_path, variables, destination_dir, marker=marker)
        if isinstance(result, Err):
            return result

        try:
            self.store.put(key, result.value)
        except OSError as e:
            return Err(
                TemplateError(
                    kind="render_error",
                    message=f"Couldn't update render cache: {e}",
                    path=template_path,
                )
            )
        return result
