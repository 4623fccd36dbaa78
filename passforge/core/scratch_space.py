"""Scoped scratch space for one build.

A ScratchSpace is a private temporary directory owned by exactly one
build. It holds the staged credential bundle, the extracted key material,
the serialized manifest and the raw signature, and is removed on every
exit path of the ``with`` block.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

from passforge.core.errors import ScratchSpaceError

logger = logging.getLogger(__name__)


class ScratchSpace:
    """Context manager around a private temporary directory.

    Parameters
    ----------
    root:
        Parent directory for the scratch directory. ``None`` uses the
        system temp location.
    prefix:
        Directory name prefix, useful when inspecting a shared root.
    """

    def __init__(self, root: Path | None = None, *, prefix: str = "passforge-") -> None:
        self._root = Path(root) if root is not None else None
        self._prefix = prefix
        self._path: Path | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> ScratchSpace:
        try:
            if self._root is not None:
                self._root.mkdir(parents=True, exist_ok=True)
            self._path = Path(tempfile.mkdtemp(prefix=self._prefix, dir=self._root))
        except OSError as exc:
            raise ScratchSpaceError(f"Cannot create scratch space: {exc.strerror}") from exc
        logger.debug("Scratch space acquired at %s", self._path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            self.release()
        except ScratchSpaceError:
            if exc is None:
                raise
            # A failing build keeps its original error; the leak is logged.
            logger.error("Scratch space %s could not be removed after a failed build", self._path)

    def release(self) -> None:
        """Remove the scratch directory. Safe to call more than once."""
        if self._path is None:
            return
        path, self._path = self._path, None
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise ScratchSpaceError(f"Cannot remove scratch space {path}: {exc.strerror}") from exc
        logger.debug("Scratch space released at %s", path)

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        if self._path is None:
            raise ScratchSpaceError("Scratch space is not active")
        return self._path

    @property
    def active(self) -> bool:
        return self._path is not None

    def write_secret(self, name: str, data: bytes) -> Path:
        """Write *data* to a file only the current user can read."""
        target = self.path / name
        try:
            fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
        except OSError as exc:
            raise ScratchSpaceError(f"Cannot write {name} to scratch space: {exc.strerror}") from exc
        return target

    def write_bytes(self, name: str, data: bytes) -> Path:
        target = self.path / name
        try:
            target.write_bytes(data)
        except OSError as exc:
            raise ScratchSpaceError(f"Cannot write {name} to scratch space: {exc.strerror}") from exc
        return target
