"""Native signing engine backed by the ``cryptography`` package.

Identity derivation unlocks the PKCS#12 bundle in memory; no key material
is written to disk. Signing produces a DER-encoded, detached CMS/PKCS#7
signature over the manifest bytes with the trust chain embedded.
"""

from __future__ import annotations

import logging
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import pkcs7, pkcs12

from passforge.bridge.trust_chain import TrustChain
from passforge.core.errors import CredentialError, ScratchSpaceError, SigningEngineError
from passforge.models.identity import SignerMaterial

logger = logging.getLogger(__name__)


class NativeSigningEngine:
    """In-process signing via ``cryptography``.

    Parameters
    ----------
    reproducible:
        Omit signed attributes (signing time, capabilities) so that RSA
        signatures are byte-for-byte reproducible for identical inputs.
    """

    name = "native"

    def __init__(self, *, reproducible: bool = False) -> None:
        self.reproducible = reproducible

    def derive_identity(self, bundle_path: Path, passphrase: str, workdir: Path) -> SignerMaterial:
        """Unlock the staged PKCS#12 bundle and return its key and certificate."""
        try:
            data = Path(bundle_path).read_bytes()
        except OSError as exc:
            raise ScratchSpaceError(f"Cannot read staged credential bundle: {exc.strerror}") from exc

        try:
            key, cert, _extra = pkcs12.load_key_and_certificates(
                data, passphrase.encode("utf-8") if passphrase else None
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise CredentialError(
                "Cannot unlock credential bundle: wrong passphrase or malformed PKCS#12 data"
            ) from exc

        if key is None or cert is None:
            raise CredentialError("Credential bundle must contain a private key and a certificate")
        if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
            raise CredentialError(
                f"Unsupported private key type {type(key).__name__}; RSA or EC required"
            )

        subject = cert.subject.rfc4514_string()
        logger.debug("Unlocked signer certificate %s", subject)
        return SignerMaterial(
            engine=self.name,
            subject=subject,
            certificate=cert,
            private_key=key,
        )

    def sign_detached(
        self,
        document_path: Path,
        material: SignerMaterial,
        chain: TrustChain,
        workdir: Path,
    ) -> bytes:
        """Return a DER detached signature over the bytes at *document_path*."""
        if material.certificate is None or material.private_key is None:
            raise SigningEngineError("Signer material was not derived by the native engine")
        try:
            document = Path(document_path).read_bytes()
        except OSError as exc:
            raise ScratchSpaceError(f"Cannot read manifest from scratch space: {exc.strerror}") from exc

        options = [pkcs7.PKCS7Options.DetachedSignature, pkcs7.PKCS7Options.Binary]
        if self.reproducible:
            options.append(pkcs7.PKCS7Options.NoAttributes)

        builder = (
            pkcs7.PKCS7SignatureBuilder()
            .set_data(document)
            .add_signer(material.certificate, material.private_key, hashes.SHA256())
        )
        for cert in chain.certificates:
            builder = builder.add_certificate(cert)

        try:
            signature = builder.sign(serialization.Encoding.DER, options)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise SigningEngineError(f"Native signing failed: {exc}") from exc
        logger.debug("Native signature: %d bytes", len(signature))
        return signature
