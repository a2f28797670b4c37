from __future__ import annotations

import tempfile
from pathlib import Path
from types import TracebackType

from relpub.platform.files import remove_tree

__all__ = ["EphemeralWorkspace"]


class EphemeralWorkspace:
    """Temporary directory owned by a single publish run.

    ``acquire()`` creates it; ``release()`` deletes it and is safe to call
    more than once or before ``acquire()``. Using it as a context manager
    releases on every exit path, including exceptions.
    """

    def __init__(self, parent: Path | None = None, *, prefix: str = "relpub-") -> None:
        self._parent = parent
        self._prefix = prefix
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        if self._path is None:
            raise RuntimeError("workspace not acquired")
        return self._path

    @property
    def acquired(self) -> bool:
        return self._path is not None

    def acquire(self) -> Path:
        """Create the directory.

        Raises:
            OSError: if the directory cannot be created.
            RuntimeError: if already acquired.
        """
        if self._path is not None:
            raise RuntimeError(f"workspace already acquired: {self._path}")
        if self._parent is not None:
            self._parent.mkdir(parents=True, exist_ok=True)
        self._path = Path(tempfile.mkdtemp(prefix=self._prefix, dir=self._parent))
        return self._path

    def release(self) -> None:
        path, self._path = self._path, None
        if path is not None:
            remove_tree(path)

    def __enter__(self) -> Path:
        return self.acquire()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
