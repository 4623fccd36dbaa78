"""Manifest Builder — aggregate digest entries into the signed document.

Runs only once the Digest Stage has processed every asset. The serialized
bytes go to two sinks, the scratch file the Signing Adapter reads and the
container's manifest entry, and both sinks receive the same bytes object.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from passforge.core.archive_composer import ArchiveComposer
from passforge.core.errors import SerializationError
from passforge.core.scratch_space import ScratchSpace
from passforge.models.assets import DigestEntry
from passforge.models.manifest import Manifest

logger = logging.getLogger(__name__)

SCRATCH_MANIFEST_NAME = "manifest.json"


class ManifestBuilder:
    """Builds, serializes, and writes the manifest."""

    def __init__(self, algorithm: str = "sha256") -> None:
        self.algorithm = algorithm

    def build(self, entries: Sequence[DigestEntry]) -> Manifest:
        """Aggregate *entries* into a Manifest. Names must be unique."""
        mapping: dict[str, str] = {}
        for entry in entries:
            if entry.name in mapping:
                raise SerializationError(f"Duplicate manifest key {entry.name!r}")
            mapping[entry.name] = entry.digest.lower()
        try:
            return Manifest(entries=mapping, algorithm=self.algorithm)
        except ValidationError as exc:
            raise SerializationError(f"Manifest entries are not representable: {exc.errors()[0]['msg']}") from exc

    def serialize(self, manifest: Manifest) -> bytes:
        try:
            return manifest.to_bytes()
        except (UnicodeEncodeError, TypeError, ValueError) as exc:
            raise SerializationError(f"Manifest cannot be encoded: {exc}") from exc

    def emit(
        self,
        entries: Sequence[DigestEntry],
        scratch: ScratchSpace,
        composer: ArchiveComposer,
    ) -> tuple[Manifest, bytes, Path]:
        """Build the manifest and write it to scratch storage and the container.

        Returns ``(manifest, manifest_bytes, scratch_path)``.
        """
        manifest = self.build(entries)
        expected = {e.name for e in entries}
        if manifest.filenames != expected:
            raise SerializationError("Manifest keys do not match the processed assets")

        data = self.serialize(manifest)
        path = scratch.write_bytes(SCRATCH_MANIFEST_NAME, data)
        composer.write_manifest(data)
        logger.info("Manifest written: %d entries, %d bytes", len(manifest), len(data))
        return manifest, data, path
