"""Digest and canonical serialization helpers.

The manifest is the object that gets signed, so its byte form must be a
pure function of its content: sorted keys, compact separators, UTF-8,
no trailing newline.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, BinaryIO, Protocol

# Algorithms a build may be configured with, keyed by config name.
SUPPORTED_DIGESTS: dict[str, int] = {
    "sha256": 64,
    "sha1": 40,
}


class _Digest(Protocol):
    def update(self, data: bytes, /) -> None: ...

    def hexdigest(self) -> str: ...


class _Sink(Protocol):
    def write(self, data: bytes, /) -> Any: ...


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    Raises ``UnicodeEncodeError`` for strings that are not valid Unicode
    (lone surrogates from undecodable filenames), and ``TypeError`` /
    ``ValueError`` for objects JSON cannot represent.
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8", errors="strict")


def new_digest(algorithm: str) -> _Digest:
    """Return a fresh hash object for a supported algorithm name."""
    if algorithm not in SUPPORTED_DIGESTS:
        raise ValueError(
            f"Unsupported digest algorithm {algorithm!r}. "
            f"Supported: {sorted(SUPPORTED_DIGESTS)}"
        )
    return hashlib.new(algorithm)


def hex_digest(data: bytes, algorithm: str = "sha256") -> str:
    """Return the lowercase hex digest of raw bytes."""
    digest = new_digest(algorithm)
    digest.update(data)
    return digest.hexdigest()


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def algorithm_for_hex(hex_value: str) -> str | None:
    """Guess the algorithm that produced *hex_value* from its length."""
    for name, length in SUPPORTED_DIGESTS.items():
        if len(hex_value) == length:
            return name
    return None


def tee_copy(
    source: BinaryIO,
    sink: _Sink,
    digest: _Digest,
    *,
    chunk_size: int = 64 * 1024,
) -> int:
    """Copy *source* into *sink* while feeding the same chunks to *digest*.

    Each chunk is read exactly once, so the hashed bytes and the written
    bytes are the same bytes. Returns the number of bytes copied.
    """
    total = 0
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return total
        digest.update(chunk)
        sink.write(chunk)
        total += len(chunk)
