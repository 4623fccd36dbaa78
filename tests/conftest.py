"""Shared test fixtures for passforge."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID
from pydantic import SecretStr

from passforge.bridge.trust_chain import TrustChain
from passforge.config import ForgeConfig
from passforge.core.archive_composer import ArchiveComposer
from passforge.core.orchestrator import Orchestrator
from passforge.models.identity import SigningIdentity

PASSPHRASE = "p"


# ---------------------------------------------------------------------------
# Throwaway PKI: root CA -> intermediate (the embedded trust chain) -> signer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PKIBundle:
    root_cert: x509.Certificate
    intermediate_cert: x509.Certificate
    signer_cert: x509.Certificate
    signer_key: rsa.RSAPrivateKey
    bundle: bytes  # PKCS#12, encrypted with PASSPHRASE
    bundle_no_passphrase: bytes  # PKCS#12, unencrypted

    @property
    def intermediate_pem(self) -> bytes:
        return self.intermediate_cert.public_bytes(serialization.Encoding.PEM)


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def _issue(
    subject: str,
    subject_key: rsa.RSAPrivateKey,
    issuer: str,
    issuer_key: rsa.RSAPrivateKey,
    *,
    ca: bool,
) -> x509.Certificate:
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer))
        .public_key(subject_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=not ca,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=ca,
                crl_sign=ca,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .sign(issuer_key, hashes.SHA256())
    )


def _rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def pki() -> PKIBundle:
    """Generate one certificate hierarchy for the whole test session."""
    root_key, inter_key, signer_key = _rsa_key(), _rsa_key(), _rsa_key()
    root = _issue("Test Root CA", root_key, "Test Root CA", root_key, ca=True)
    inter = _issue("Test Pass Issuer CA", inter_key, "Test Root CA", root_key, ca=True)
    signer = _issue("Pass Type ID: pass.test.passforge", signer_key, "Test Pass Issuer CA", inter_key, ca=False)

    return PKIBundle(
        root_cert=root,
        intermediate_cert=inter,
        signer_cert=signer,
        signer_key=signer_key,
        bundle=pkcs12.serialize_key_and_certificates(
            b"signer", signer_key, signer, None,
            serialization.BestAvailableEncryption(PASSPHRASE.encode()),
        ),
        bundle_no_passphrase=pkcs12.serialize_key_and_certificates(
            b"signer", signer_key, signer, None, serialization.NoEncryption(),
        ),
    )


@pytest.fixture(scope="session")
def trust_chain(pki: PKIBundle) -> TrustChain:
    """The intermediate certificate as an embedded trust chain."""
    return TrustChain.from_pem(pki.intermediate_pem, source="test-intermediate")


@pytest.fixture
def trust_chain_file(tmp_path: Path, pki: PKIBundle) -> Path:
    path = tmp_path / "chain.pem"
    path.write_bytes(pki.intermediate_pem)
    return path


@pytest.fixture
def identity(pki: PKIBundle) -> SigningIdentity:
    """Credential bundle with the correct passphrase."""
    return SigningIdentity(bundle=pki.bundle, passphrase=SecretStr(PASSPHRASE))


@pytest.fixture
def bundle_file(tmp_path: Path, pki: PKIBundle) -> Path:
    path = tmp_path / "Certificates.p12"
    path.write_bytes(pki.bundle)
    return path


# ---------------------------------------------------------------------------
# Build fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def scratch_root(tmp_path: Path) -> Path:
    """Parent directory for scratch spaces, so tests can assert it is empty."""
    return tmp_path / "scratch"


@pytest.fixture
def forge_config(scratch_root: Path) -> ForgeConfig:
    """Config isolated from the developer's environment and .env file."""
    return ForgeConfig(_env_file=None, scratch_root=scratch_root)


@pytest.fixture
def make_orchestrator(
    forge_config: ForgeConfig, trust_chain: TrustChain
) -> Callable[..., Orchestrator]:
    """Factory fixture: Orchestrator with test config overrides."""

    def _factory(**overrides) -> Orchestrator:
        engine = overrides.pop("engine", None)
        cfg = forge_config.model_copy(update=overrides) if overrides else forge_config
        return Orchestrator(cfg, engine=engine, trust_chain=trust_chain)

    return _factory


@pytest.fixture
def orchestrator(make_orchestrator: Callable[..., Orchestrator]) -> Orchestrator:
    return make_orchestrator()


@pytest.fixture
def example_assets() -> dict[str, bytes]:
    """The two-asset example pass."""
    return {
        "icon.png": b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 4,
        "pass.json": b'{"formatVersion":1,"description":"Test pass"}',
    }


@pytest.fixture
def asset_dir(tmp_path: Path, example_assets: dict[str, bytes]) -> Path:
    """A pass directory with the example assets and a sub-directory to skip."""
    directory = tmp_path / "Coupon.pass"
    directory.mkdir()
    for name, data in example_assets.items():
        (directory / name).write_bytes(data)
    (directory / "en.lproj").mkdir()
    (directory / "en.lproj" / "pass.strings").write_bytes(b'"k" = "v";')
    return directory


@pytest.fixture
def composer() -> ArchiveComposer:
    return ArchiveComposer()


@pytest.fixture(autouse=True)
def _reset_passforge_logger() -> Iterator[None]:
    """Undo CLI logging setup so caplog sees passforge records in every test."""
    yield
    logger = logging.getLogger("passforge")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
