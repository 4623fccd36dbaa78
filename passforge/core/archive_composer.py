"""Archive Composer — owns the single output container of a build.

Write order is enforced structurally:

    asset entries (any number) -> manifest -> signature -> finalize

Each entry name is written at most once. After ``finalize()`` or
``abort()`` no further writes are accepted. Entries carry a fixed
timestamp and fixed permissions so identical inputs yield identical bytes.
"""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import IO

from passforge.core.errors import ArchiveError, PassBuildError

logger = logging.getLogger(__name__)

# Earliest timestamp the zip format can represent.
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
# Regular file, rw-r--r--
FIXED_EXTERNAL_ATTR = 0o100644 << 16


class ComposerPhase(str, Enum):
    ASSETS = "assets"
    MANIFEST = "manifest"
    SIGNATURE = "signature"
    FINALIZED = "finalized"
    ABORTED = "aborted"


class ArchiveComposer:
    """In-memory zip container with enforced write order and unique entries.

    Parameters
    ----------
    manifest_name:
        Entry name of the manifest document.
    signature_name:
        Entry name of the detached signature.
    compress:
        Deflate entries when True, store them otherwise.
    """

    def __init__(
        self,
        *,
        manifest_name: str = "manifest",
        signature_name: str = "signature",
        compress: bool = True,
    ) -> None:
        if manifest_name == signature_name:
            raise ArchiveError("Manifest and signature entries need distinct names")
        self.manifest_name = manifest_name
        self.signature_name = signature_name
        self._compression = zipfile.ZIP_DEFLATED if compress else zipfile.ZIP_STORED
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, mode="w", compression=self._compression)
        self._names: list[str] = []
        self._phase = ComposerPhase.ASSETS

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def phase(self) -> ComposerPhase:
        return self._phase

    @property
    def entry_names(self) -> list[str]:
        """Entry names in write order."""
        return list(self._names)

    @property
    def reserved_names(self) -> frozenset[str]:
        return frozenset({self.manifest_name, self.signature_name})

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @contextmanager
    def open_entry(self, name: str) -> Iterator[IO[bytes]]:
        """Create an asset entry and yield a writable sink for its bytes."""
        if name in self.reserved_names:
            raise ArchiveError(f"Entry name {name!r} is reserved for build output")
        self._claim(name, ComposerPhase.ASSETS)
        try:
            with self._zip.open(self._entry_info(name), mode="w") as sink:
                yield sink
        except PassBuildError:
            raise
        except (ValueError, RuntimeError, zipfile.LargeZipFile) as exc:
            raise ArchiveError(f"Cannot write entry {name!r}: {exc}") from exc

    def write_manifest(self, data: bytes) -> None:
        """Write the manifest entry. Closes the asset phase."""
        self._claim(self.manifest_name, ComposerPhase.ASSETS)
        self._write_whole(self.manifest_name, data)
        self._phase = ComposerPhase.MANIFEST

    def write_signature(self, data: bytes) -> None:
        """Write the signature entry. Requires the manifest to be written."""
        self._claim(self.signature_name, ComposerPhase.MANIFEST)
        self._write_whole(self.signature_name, data)
        self._phase = ComposerPhase.SIGNATURE

    def finalize(self) -> bytes:
        """Close the container and return its bytes."""
        if self._phase != ComposerPhase.SIGNATURE:
            raise ArchiveError(
                f"Cannot finalize container in phase {self._phase.value}; "
                "manifest and signature must be written first"
            )
        try:
            self._zip.close()
        except (ValueError, OSError) as exc:
            raise ArchiveError(f"Cannot finalize container: {exc}") from exc
        self._phase = ComposerPhase.FINALIZED
        data = self._buffer.getvalue()
        logger.debug("Container finalized: %d entries, %d bytes", len(self._names), len(data))
        return data

    def abort(self) -> None:
        """Discard the container. Nothing written so far is ever returned."""
        if self._phase in (ComposerPhase.FINALIZED, ComposerPhase.ABORTED):
            return
        try:
            self._zip.close()
        except (ValueError, OSError):
            logger.debug("Ignoring close failure while aborting container")
        self._buffer = io.BytesIO()
        self._phase = ComposerPhase.ABORTED

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _claim(self, name: str, required_phase: ComposerPhase) -> None:
        if self._phase in (ComposerPhase.FINALIZED, ComposerPhase.ABORTED):
            raise ArchiveError(f"Container is {self._phase.value}; cannot write {name!r}")
        if self._phase != required_phase:
            raise ArchiveError(
                f"Cannot write {name!r} in phase {self._phase.value} "
                f"(requires {required_phase.value})"
            )
        if name in self._names:
            raise ArchiveError(f"Duplicate entry {name!r}")
        self._names.append(name)

    def _entry_info(self, name: str) -> zipfile.ZipInfo:
        info = zipfile.ZipInfo(name, date_time=FIXED_DATE_TIME)
        info.compress_type = self._compression
        info.external_attr = FIXED_EXTERNAL_ATTR
        info.create_system = 3  # unix, so external_attr is honoured everywhere
        return info

    def _write_whole(self, name: str, data: bytes) -> None:
        try:
            self._zip.writestr(self._entry_info(name), data)
        except (ValueError, RuntimeError) as exc:
            raise ArchiveError(f"Cannot write entry {name!r}: {exc}") from exc
