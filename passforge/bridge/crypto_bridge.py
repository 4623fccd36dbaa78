"""Crypto bridge — the Signing Adapter's engine boundary.

Bridge boundary
---------------
The build only needs two capabilities from a cryptographic engine:

1. ``derive_identity(bundle_path, passphrase, workdir)``: unlock a PKCS#12
   credential bundle into a usable certificate and private key.
2. ``sign_detached(document_path, material, chain, workdir)``: produce a
   DER detached CMS/PKCS#7 signature over a document, embedding the
   trust chain.

Two engines implement them:

* **native** (``cryptography``): in-process, preferred.
* **openssl**: external ``openssl`` process with a timeout, kept as a
  fallback for bundles or environments the native engine cannot handle.

Verification is fail-closed: when no verifier can run, signatures are
reported as not verified.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

import cryptography
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import pkcs7

from passforge.bridge.native_engine import NativeSigningEngine
from passforge.bridge.openssl_engine import OpenSSLSigningEngine
from passforge.bridge.trust_chain import TrustChain
from passforge.config import ForgeConfig
from passforge.core.errors import SigningEngineError
from passforge.models.identity import SignerMaterial

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class SigningEngine(Protocol):
    """Protocol for signing backends.

    Any object with ``name``, ``derive_identity`` and ``sign_detached``
    satisfies this protocol.
    """

    name: str

    def derive_identity(self, bundle_path: Path, passphrase: str, workdir: Path) -> SignerMaterial:
        """Unlock the credential bundle at *bundle_path*.

        Raises
        ------
        CredentialError
            Wrong passphrase or malformed bundle.
        SigningEngineError
            The engine itself failed or is unavailable.
        """
        ...

    def sign_detached(
        self,
        document_path: Path,
        material: SignerMaterial,
        chain: TrustChain,
        workdir: Path,
    ) -> bytes:
        """Return DER detached signature bytes over the file at *document_path*."""
        ...


# ---------------------------------------------------------------------------
# Engine selection
# ---------------------------------------------------------------------------


def select_engine(config: ForgeConfig) -> SigningEngine:
    """Build the engine named by ``config.signing_backend``."""
    if config.signing_backend == "native":
        return NativeSigningEngine(reproducible=config.reproducible_signatures)
    if config.signing_backend == "openssl":
        engine = OpenSSLSigningEngine(
            config.openssl_binary,
            timeout=config.engine_timeout_seconds,
            reproducible=config.reproducible_signatures,
        )
        if not engine.is_available():
            raise SigningEngineError(
                f"Signing backend 'openssl' selected but {config.openssl_binary!r} is not on PATH"
            )
        return engine
    raise SigningEngineError(f"Unknown signing backend {config.signing_backend!r}")


def describe_backends(config: ForgeConfig) -> dict[str, tuple[bool, str]]:
    """Report availability of each backend as ``{name: (available, detail)}``."""
    report: dict[str, tuple[bool, str]] = {
        "native": (True, f"cryptography {cryptography.__version__}"),
    }
    openssl = OpenSSLSigningEngine(config.openssl_binary, timeout=min(config.engine_timeout_seconds, 5.0))
    if openssl.is_available():
        try:
            report["openssl"] = (True, openssl.version())
        except SigningEngineError as exc:
            report["openssl"] = (False, str(exc))
    else:
        report["openssl"] = (False, f"{config.openssl_binary!r} not found on PATH")
    return report


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def embedded_certificate_fingerprints(signature: bytes) -> list[str]:
    """SHA-256 fingerprints (hex) of the certificates carried in a DER signature.

    Raises ``ValueError`` when the bytes are not a PKCS#7 structure.
    """
    certs = pkcs7.load_der_pkcs7_certificates(signature)
    return [c.fingerprint(hashes.SHA256()).hex() for c in certs]


def chain_is_embedded(signature: bytes, chain: TrustChain) -> bool:
    """True if every trust-chain certificate is carried in *signature*."""
    try:
        embedded = set(embedded_certificate_fingerprints(signature))
    except ValueError:
        return False
    return all(fp in embedded for fp in chain.fingerprints)


def verify_signature(
    document: bytes,
    signature: bytes,
    chain: TrustChain,
    config: ForgeConfig,
) -> bool:
    """Verify *signature* over *document* against *chain*.

    Uses the openssl verifier. Fail-closed: returns False if it cannot run.
    """
    verifier = OpenSSLSigningEngine(config.openssl_binary, timeout=config.engine_timeout_seconds)
    if not verifier.is_available():
        logger.warning(
            "verify_signature: %r not available; cannot verify signature.",
            config.openssl_binary,
        )
        return False
    try:
        return verifier.verify_detached(document, signature, chain)
    except SigningEngineError as exc:
        logger.warning("verify_signature: verifier failed: %s", exc)
        return False
