"""Fallback signing engine that shells out to the ``openssl`` binary.

Every invocation runs with a timeout. Passphrases travel through the child
environment (``-passin env:NAME``), never through argv, so they cannot be
read from the process table. The key extracted from the credential bundle
is re-encrypted under a random per-build passphrase and lives only in the
build's scratch space.
"""

from __future__ import annotations

import logging
import os
import secrets
import shutil
import subprocess
import tempfile
from pathlib import Path

from pydantic import SecretStr

from passforge.bridge.trust_chain import TrustChain
from passforge.core.errors import CredentialError, ScratchSpaceError, SigningEngineError
from passforge.models.identity import SignerMaterial

logger = logging.getLogger(__name__)

_PASSIN_VAR = "PASSFORGE_PASSIN"
_PASSOUT_VAR = "PASSFORGE_PASSOUT"

# stderr fragments openssl prints when the bundle cannot be unlocked
_CREDENTIAL_MARKERS = (
    "mac verify",
    "invalid password",
    "bad decrypt",
    "asn1",
    "expecting an",
    "wrong tag",
)
# stderr fragments meaning the bundle uses algorithms openssl 3 only loads with -legacy
_LEGACY_MARKERS = ("unsupported", "rc2", "legacy")


class OpenSSLSigningEngine:
    """Signing via ``openssl pkcs12`` and ``openssl smime`` subprocesses.

    Parameters
    ----------
    binary:
        Name or path of the openssl executable.
    timeout:
        Seconds each invocation may run before it is killed.
    reproducible:
        Pass ``-noattr`` so no signing time is embedded.
    """

    name = "openssl"

    def __init__(
        self,
        binary: str = "openssl",
        *,
        timeout: float = 30.0,
        reproducible: bool = False,
    ) -> None:
        self.binary = binary
        self.timeout = timeout
        self.reproducible = reproducible

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def version(self) -> str:
        """Return the ``openssl version`` string, or raise SigningEngineError."""
        result = self._run(["version"], env={})
        if result.returncode != 0:
            raise SigningEngineError(f"{self.binary} version exited with {result.returncode}")
        return result.stdout.decode("utf-8", "replace").strip()

    # ------------------------------------------------------------------
    # SigningEngine protocol
    # ------------------------------------------------------------------

    def derive_identity(self, bundle_path: Path, passphrase: str, workdir: Path) -> SignerMaterial:
        """Extract certificate.pem and an encrypted key.pem into *workdir*."""
        cert_path = Path(workdir) / "certificate.pem"
        key_path = Path(workdir) / "key.pem"
        key_passphrase = secrets.token_urlsafe(32)
        env = {_PASSIN_VAR: passphrase, _PASSOUT_VAR: key_passphrase}

        self._pkcs12(
            ["-in", str(bundle_path), "-clcerts", "-nokeys", "-out", str(cert_path),
             "-passin", f"env:{_PASSIN_VAR}"],
            env,
            secrets_=(passphrase,),
        )
        self._pkcs12(
            ["-in", str(bundle_path), "-nocerts", "-out", str(key_path),
             "-passin", f"env:{_PASSIN_VAR}", "-passout", f"env:{_PASSOUT_VAR}"],
            env,
            secrets_=(passphrase, key_passphrase),
        )

        for produced in (cert_path, key_path):
            if not produced.exists() or produced.stat().st_size == 0:
                raise CredentialError("Credential bundle must contain a private key and a certificate")
        return SignerMaterial(
            engine=self.name,
            certificate_path=cert_path,
            key_path=key_path,
            key_passphrase=SecretStr(key_passphrase),
        )

    def sign_detached(
        self,
        document_path: Path,
        material: SignerMaterial,
        chain: TrustChain,
        workdir: Path,
    ) -> bytes:
        """Run ``openssl smime -sign`` and return the DER signature bytes."""
        if material.certificate_path is None or material.key_path is None:
            raise SigningEngineError("Signer material was not derived by the openssl engine")
        key_passphrase = material.key_passphrase.get_secret_value() if material.key_passphrase else ""

        chain_path = Path(workdir) / "chain.pem"
        signature_path = Path(workdir) / "signature.der"
        try:
            chain_path.write_bytes(chain.pem)
        except OSError as exc:
            raise ScratchSpaceError(f"Cannot stage trust chain: {exc.strerror}") from exc

        args = [
            "smime", "-sign", "-binary",
            "-md", "sha256",
            "-signer", str(material.certificate_path),
            "-inkey", str(material.key_path),
            "-certfile", str(chain_path),
            "-in", str(document_path),
            "-out", str(signature_path),
            "-outform", "DER",
            "-passin", f"env:{_PASSIN_VAR}",
        ]
        if self.reproducible:
            args.append("-noattr")

        result = self._run(args, env={_PASSIN_VAR: key_passphrase})
        if result.returncode != 0:
            raise SigningEngineError(
                f"openssl smime -sign exited with {result.returncode}: "
                f"{_tail(result.stderr, (key_passphrase,))}"
            )
        try:
            signature = signature_path.read_bytes()
        except OSError as exc:
            raise SigningEngineError("openssl smime -sign produced no signature file") from exc
        if not signature:
            raise SigningEngineError("openssl smime -sign produced an empty signature")
        return signature

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_detached(self, document: bytes, signature: bytes, chain: TrustChain) -> bool:
        """Verify a DER detached signature over *document* against *chain*.

        The chain certificates are trusted as anchors (``-partial_chain``),
        so no root certificate is needed. Returns False on any failure.
        """
        with tempfile.TemporaryDirectory(prefix="passforge-verify-") as tmp:
            work = Path(tmp)
            (work / "document").write_bytes(document)
            (work / "signature.der").write_bytes(signature)
            (work / "chain.pem").write_bytes(chain.pem)
            result = self._run(
                [
                    "smime", "-verify", "-binary",
                    "-inform", "DER",
                    "-in", str(work / "signature.der"),
                    "-content", str(work / "document"),
                    "-CAfile", str(work / "chain.pem"),
                    "-partial_chain",
                    "-purpose", "any",
                    "-out", os.devnull,
                ],
                env={},
            )
        if result.returncode != 0:
            logger.info("Signature verification failed: %s", _tail(result.stderr, ()))
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pkcs12(self, args: list[str], env: dict[str, str], *, secrets_: tuple[str, ...]) -> None:
        result = self._run(["pkcs12", *args], env=env)
        if result.returncode == 0:
            return
        stderr = result.stderr.decode("utf-8", "replace").lower()
        if any(marker in stderr for marker in _LEGACY_MARKERS):
            logger.debug("Retrying openssl pkcs12 with -legacy")
            result = self._run(["pkcs12", "-legacy", *args], env=env)
            if result.returncode == 0:
                return
            stderr = result.stderr.decode("utf-8", "replace").lower()
        if any(marker in stderr for marker in _CREDENTIAL_MARKERS):
            raise CredentialError(
                "Cannot unlock credential bundle: wrong passphrase or malformed PKCS#12 data"
            )
        raise SigningEngineError(
            f"openssl pkcs12 exited with {result.returncode}: {_tail(result.stderr, secrets_)}"
        )

    def _run(self, args: list[str], *, env: dict[str, str]) -> subprocess.CompletedProcess[bytes]:
        command = [self.binary, *args]
        logger.debug("Running %s %s", self.binary, args[0])
        try:
            return subprocess.run(
                command,
                capture_output=True,
                timeout=self.timeout,
                env={**os.environ, **env},
                check=False,
            )
        except FileNotFoundError as exc:
            raise SigningEngineError(f"Signing engine binary {self.binary!r} not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise SigningEngineError(
                f"{self.binary} {args[0]} timed out after {self.timeout:g}s"
            ) from exc
        except OSError as exc:
            raise SigningEngineError(f"Cannot run {self.binary!r}: {exc.strerror}") from exc


def _tail(stderr: bytes, redact: tuple[str, ...], limit: int = 400) -> str:
    """Last part of a child's stderr with any secret values blanked out."""
    text = stderr.decode("utf-8", "replace").strip()
    for value in redact:
        if value:
            text = text.replace(value, "***")
    return text[-limit:] or "no error output"
