"""Asset collection from a directory or from in-memory content.

Directory semantics: every non-directory entry is an asset, sub-directories
are skipped silently. Assets are returned sorted by name so that the
container's entry order is reproducible.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from passforge.core.errors import AssetReadError
from passforge.models.assets import Asset

logger = logging.getLogger(__name__)

AssetInput = Union[Path, str, Mapping[str, bytes], Iterable[Asset]]


def assets_from_directory(directory: Path | str) -> list[Asset]:
    """List *directory* and return one Asset per non-directory entry."""
    directory = Path(directory)
    assets: list[Asset] = []
    try:
        with os.scandir(directory) as it:
            for entry in it:
                if entry.is_dir():
                    logger.debug("Skipping sub-directory %s", entry.name)
                    continue
                assets.append(_make_asset(entry.name, path=Path(entry.path)))
    except OSError as exc:
        raise AssetReadError(
            f"Cannot list asset directory {directory}: {exc.strerror}",
            asset=str(directory),
        ) from exc
    return sorted(assets, key=lambda a: a.name)


def assets_from_mapping(files: Mapping[str, bytes]) -> list[Asset]:
    """Build assets from a ``{filename: content}`` mapping."""
    return sorted(
        (_make_asset(name, content=bytes(data)) for name, data in files.items()),
        key=lambda a: a.name,
    )


def collect_assets(source: AssetInput) -> list[Asset]:
    """Normalize any supported asset input into a sorted, de-duplicated list."""
    if isinstance(source, (str, Path)):
        return assets_from_directory(source)
    if isinstance(source, Mapping):
        return assets_from_mapping(source)

    assets = sorted(source, key=lambda a: a.name)
    seen: set[str] = set()
    for asset in assets:
        if asset.name in seen:
            raise AssetReadError(f"Duplicate asset name {asset.name!r}", asset=asset.name)
        seen.add(asset.name)
    return assets


def _make_asset(name: str, *, path: Path | None = None, content: bytes | None = None) -> Asset:
    try:
        return Asset(name=name, path=path, content=content)
    except ValidationError as exc:
        raise AssetReadError(f"Invalid asset name {name!r}", asset=name) from exc
