"""Signing identity and derived signer material.

Both models hold secrets. Passphrases are ``SecretStr`` so they never show
up in reprs, logs, or error messages.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, BinaryIO

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from passforge.core.errors import CredentialError


class SigningIdentity(BaseModel):
    """A PKCS#12 credential bundle plus its unlock passphrase.

    Supplied by the caller. The bundle bytes are staged into a build's
    scratch space and removed with it.
    """

    model_config = ConfigDict(frozen=True)

    bundle: bytes = Field(repr=False)
    passphrase: SecretStr = SecretStr("")

    @classmethod
    def from_path(cls, path: Path | str, passphrase: str = "") -> SigningIdentity:
        """Read a credential bundle from disk."""
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise CredentialError(f"Cannot read credential bundle {path}: {exc.strerror}") from exc
        return cls(bundle=data, passphrase=SecretStr(passphrase))

    @classmethod
    def from_stream(cls, stream: BinaryIO, passphrase: str = "") -> SigningIdentity:
        """Read a credential bundle from an open binary stream."""
        try:
            data = stream.read()
        except OSError as exc:
            raise CredentialError(f"Cannot read credential bundle stream: {exc.strerror}") from exc
        return cls(bundle=data, passphrase=SecretStr(passphrase))


class SignerMaterial(BaseModel):
    """Certificate and private key unlocked from a credential bundle.

    The native engine fills ``certificate`` / ``private_key`` with in-memory
    key objects; the openssl engine fills the path fields, pointing into the
    build's scratch space, and a per-build random ``key_passphrase``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    engine: str
    subject: str = ""
    certificate: Any = Field(default=None, repr=False)
    private_key: Any = Field(default=None, repr=False)
    certificate_path: Path | None = None
    key_path: Path | None = None
    key_passphrase: SecretStr | None = None
