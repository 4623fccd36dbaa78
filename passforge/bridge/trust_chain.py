"""Embedded trust-chain certificate (the pass issuer's intermediate CA).

The chain is process-wide, read-only configuration data: loaded once,
cached, and never mutated. It is embedded into every signature so
verifiers can build the chain without a separate lookup.

The default certificate ships inside the package as
``passforge/certs/wwdr.pem`` (Apple also distributes it as the DER file
``AppleWWDRCAG4.cer``, which is accepted in the same directory);
``ForgeConfig.trust_chain_path`` overrides it.
"""

from __future__ import annotations

import functools
import logging
import urllib.error
import urllib.request
from importlib import resources
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from pydantic import BaseModel, ConfigDict, Field

from passforge.core.errors import SigningEngineError

logger = logging.getLogger(__name__)

BUNDLED_CHAIN_NAME = "wwdr.pem"
BUNDLED_DER_NAME = "AppleWWDRCAG4.cer"
WWDR_URL = "https://www.apple.com/certificateauthority/AppleWWDRCAG4.cer"


class TrustChain(BaseModel):
    """One or more PEM certificates embedded into every signature."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pem: bytes = Field(repr=False)
    certificates: tuple[x509.Certificate, ...] = Field(repr=False)
    fingerprints: tuple[str, ...]
    source: str = "<memory>"

    @classmethod
    def from_pem(cls, pem: bytes, *, source: str = "<memory>") -> TrustChain:
        """Parse a PEM bundle. Raises SigningEngineError when it holds no certificate."""
        try:
            certs = tuple(x509.load_pem_x509_certificates(pem))
        except ValueError as exc:
            raise SigningEngineError(f"Trust chain {source} is not a valid PEM certificate bundle") from exc
        if not certs:
            raise SigningEngineError(f"Trust chain {source} contains no certificates")
        return cls._from_certificates(certs, source=source)

    @classmethod
    def from_bytes(cls, data: bytes, *, source: str = "<memory>") -> TrustChain:
        """Parse PEM, or a single DER certificate as Apple publishes it."""
        if b"-----BEGIN" in data:
            return cls.from_pem(data, source=source)
        try:
            cert = x509.load_der_x509_certificate(data)
        except ValueError as exc:
            raise SigningEngineError(f"Trust chain {source} is neither PEM nor DER") from exc
        return cls._from_certificates((cert,), source=source)

    @classmethod
    def _from_certificates(cls, certs: tuple[x509.Certificate, ...], *, source: str) -> TrustChain:
        normalized = b"".join(c.public_bytes(serialization.Encoding.PEM) for c in certs)
        return cls(
            pem=normalized,
            certificates=certs,
            fingerprints=tuple(c.fingerprint(hashes.SHA256()).hex() for c in certs),
            source=source,
        )

    @property
    def subjects(self) -> list[str]:
        return [c.subject.rfc4514_string() for c in self.certificates]


def bundled_chain_path() -> Path:
    """Location of the trust chain shipped with the package.

    Prefers ``wwdr.pem``; falls back to Apple's DER download when only that
    is present.
    """
    certs = Path(str(resources.files("passforge") / "certs"))
    pem = certs / BUNDLED_CHAIN_NAME
    der = certs / BUNDLED_DER_NAME
    if not pem.exists() and der.exists():
        return der
    return pem


@functools.lru_cache(maxsize=8)
def load_trust_chain(path: Path | None = None) -> TrustChain:
    """Load and cache the trust chain from *path* or the bundled certificate."""
    target = Path(path) if path is not None else bundled_chain_path()
    try:
        data = target.read_bytes()
    except OSError as exc:
        raise SigningEngineError(
            f"Trust chain certificate not available at {target}: {exc.strerror}. "
            "Run `passforge fetch-trust-chain` or set PASSFORGE_TRUST_CHAIN_PATH."
        ) from exc
    chain = TrustChain.from_bytes(data, source=str(target))
    logger.info("Trust chain loaded from %s (%d certificates)", target, len(chain.certificates))
    return chain


def install_trust_chain(
    destination: Path | None = None,
    *,
    url: str = WWDR_URL,
    timeout: float = 30.0,
) -> TrustChain:
    """Download the issuer certificate and store it as PEM.

    Writes to the bundled location unless *destination* is given, and
    clears the loader cache so the next build picks it up.
    """
    target = Path(destination) if destination is not None else (
        Path(str(resources.files("passforge") / "certs")) / BUNDLED_CHAIN_NAME
    )
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            data = response.read()
    except (urllib.error.URLError, OSError) as exc:
        raise SigningEngineError(f"Cannot download trust chain from {url}: {exc}") from exc

    chain = TrustChain.from_bytes(data, source=url)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(chain.pem)
    except OSError as exc:
        raise SigningEngineError(f"Cannot write trust chain to {target}: {exc.strerror}") from exc

    load_trust_chain.cache_clear()
    logger.info("Trust chain installed at %s (%s)", target, "; ".join(chain.subjects))
    return chain
