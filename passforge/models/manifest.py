"""Manifest model — the canonical digest listing that gets signed."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from passforge.core.hasher import canonical_json_bytes


class Manifest(BaseModel):
    """Mapping of filename to hex digest.

    Immutable once built. ``to_bytes()`` is the exact byte sequence that is
    written to scratch storage, packaged, and signed.
    """

    model_config = ConfigDict(frozen=True)

    entries: dict[str, str] = Field(default_factory=dict)
    algorithm: str = "sha256"

    def to_bytes(self) -> bytes:
        """Canonical JSON serialization of the entries."""
        return canonical_json_bytes(self.entries)

    @property
    def filenames(self) -> frozenset[str]:
        return frozenset(self.entries)

    def __len__(self) -> int:
        return len(self.entries)
