"""Digest Stage — hash every asset while streaming it into the container.

Each asset is opened once. Every chunk read from it is fed to the digest
and written to the container entry, so the packaged bytes and the hashed
bytes are provably the same bytes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from passforge.core.archive_composer import ArchiveComposer
from passforge.core.errors import (
    ArchiveError,
    AssetReadError,
    BuildStage,
    SerializationError,
)
from passforge.core.hasher import new_digest, tee_copy
from passforge.models.assets import Asset, DigestEntry

logger = logging.getLogger(__name__)


class DigestStage:
    """Computes one DigestEntry per asset and packages the asset bytes.

    Parameters
    ----------
    algorithm:
        Digest algorithm name, fixed for the whole process.
    chunk_size:
        Read size for the streaming copy.
    """

    def __init__(self, algorithm: str = "sha256", *, chunk_size: int = 64 * 1024) -> None:
        new_digest(algorithm)  # fail fast on unsupported names
        self.algorithm = algorithm
        self.chunk_size = chunk_size

    def run(self, assets: Sequence[Asset], composer: ArchiveComposer) -> list[DigestEntry]:
        """Digest and package *assets* in order. Any failure aborts the stage."""
        reserved = composer.reserved_names
        clashes = sorted(a.name for a in assets if a.name in reserved)
        if clashes:
            raise ArchiveError(
                f"Asset names {clashes} collide with reserved container entries",
                stage=BuildStage.DIGESTING,
            )
        unencodable = [a.name for a in assets if not _encodable(a.name)]
        if unencodable:
            raise SerializationError(
                f"Asset names {unencodable!r} cannot be encoded as UTF-8",
                stage=BuildStage.DIGESTING,
            )

        entries = [self._process(asset, composer) for asset in assets]
        logger.info("Digested %d assets with %s", len(entries), self.algorithm)
        return entries

    def _process(self, asset: Asset, composer: ArchiveComposer) -> DigestEntry:
        digest = new_digest(self.algorithm)
        try:
            source = asset.open()
        except OSError as exc:
            raise AssetReadError(
                f"Cannot open asset {asset.name!r}: {exc.strerror}", asset=asset.name
            ) from exc

        try:
            with source, composer.open_entry(asset.name) as sink:
                try:
                    size = tee_copy(source, sink, digest, chunk_size=self.chunk_size)
                except OSError as exc:
                    raise AssetReadError(
                        f"Cannot read asset {asset.name!r}: {exc.strerror}", asset=asset.name
                    ) from exc
        except ArchiveError as exc:
            exc.stage = BuildStage.DIGESTING
            raise

        entry = DigestEntry(
            name=asset.name,
            digest=digest.hexdigest(),
            algorithm=self.algorithm,
            size_bytes=size,
        )
        logger.debug("%s %s=%s (%d bytes)", asset.name, self.algorithm, entry.digest, size)
        return entry


def _encodable(name: str) -> bool:
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True
