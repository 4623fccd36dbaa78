"""Asset and digest entry models."""

from __future__ import annotations

import io
from pathlib import Path
from typing import BinaryIO

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Asset(BaseModel):
    """A named byte sequence to be packaged.

    Exactly one of ``path`` (a file owned by the caller's filesystem) or
    ``content`` (caller-supplied bytes) is set. The pipeline only references
    the bytes through ``open()``; it never keeps a copy.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path | None = None
    content: bytes | None = Field(default=None, repr=False)

    @field_validator("name")
    @classmethod
    def _flat_name(cls, value: str) -> str:
        if not value or value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(f"Asset name must be a plain filename, got {value!r}")
        return value

    @model_validator(mode="after")
    def _one_source(self) -> Asset:
        if (self.path is None) == (self.content is None):
            raise ValueError("Asset needs exactly one of path or content")
        return self

    def open(self) -> BinaryIO:
        """Open the asset for a single sequential read."""
        if self.path is not None:
            return open(self.path, "rb")
        return io.BytesIO(self.content or b"")


class DigestEntry(BaseModel):
    """Digest of exactly the bytes written into the container for ``name``."""

    model_config = ConfigDict(frozen=True)

    name: str
    digest: str  # lowercase hex
    algorithm: str = "sha256"
    size_bytes: int = 0
