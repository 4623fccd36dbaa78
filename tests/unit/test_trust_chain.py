"""Tests for trust-chain loading and caching."""

from __future__ import annotations

from pathlib import Path

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from pydantic import ValidationError

from passforge.bridge.trust_chain import (
    BUNDLED_CHAIN_NAME,
    TrustChain,
    bundled_chain_path,
    install_trust_chain,
    load_trust_chain,
)
from passforge.core.errors import SigningEngineError


class TestTrustChain:
    def test_from_pem(self, pki):
        chain = TrustChain.from_pem(pki.intermediate_pem)
        assert chain.certificates == (pki.intermediate_cert,)
        assert chain.fingerprints == (pki.intermediate_cert.fingerprint(hashes.SHA256()).hex(),)
        assert chain.subjects == ["CN=Test Pass Issuer CA"]

    def test_multiple_certificates(self, pki):
        root_pem = pki.root_cert.public_bytes(serialization.Encoding.PEM)
        chain = TrustChain.from_pem(pki.intermediate_pem + root_pem)
        assert len(chain.certificates) == 2

    def test_garbage_rejected(self):
        with pytest.raises(SigningEngineError, match="not a valid PEM"):
            TrustChain.from_pem(b"-----BEGIN CERTIFICATE-----\nnope\n-----END CERTIFICATE-----\n")

    def test_empty_rejected(self):
        with pytest.raises(SigningEngineError):
            TrustChain.from_pem(b"")

    def test_frozen(self, trust_chain: TrustChain):
        with pytest.raises(ValidationError):
            trust_chain.source = "elsewhere"


class TestLoadTrustChain:
    def test_load_from_path_is_cached(self, trust_chain_file: Path):
        first = load_trust_chain(trust_chain_file)
        second = load_trust_chain(trust_chain_file)
        assert first is second
        assert first.source == str(trust_chain_file)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(SigningEngineError, match="PASSFORGE_TRUST_CHAIN_PATH"):
            load_trust_chain(tmp_path / "absent.pem")

    def test_bundled_location(self):
        path = bundled_chain_path()
        assert path.name == BUNDLED_CHAIN_NAME
        assert path.parent.name == "certs"

    def test_der_certificate_accepted(self, pki, tmp_path: Path):
        path = tmp_path / "AppleWWDRCAG4.cer"
        path.write_bytes(pki.intermediate_cert.public_bytes(serialization.Encoding.DER))
        chain = load_trust_chain(path)
        assert chain.certificates == (pki.intermediate_cert,)
        assert chain.pem == pki.intermediate_pem

    def test_neither_pem_nor_der(self):
        with pytest.raises(SigningEngineError, match="neither PEM nor DER"):
            TrustChain.from_bytes(b"\x00\x01garbage")


class TestInstallTrustChain:
    def test_installs_pem_from_der_download(self, pki, tmp_path: Path):
        download = tmp_path / "download.cer"
        download.write_bytes(pki.intermediate_cert.public_bytes(serialization.Encoding.DER))
        target = tmp_path / "certs" / BUNDLED_CHAIN_NAME

        chain = install_trust_chain(target, url=download.as_uri())

        assert target.read_bytes() == pki.intermediate_pem
        assert load_trust_chain(target).fingerprints == chain.fingerprints

    def test_unreachable_url(self, tmp_path: Path):
        missing = tmp_path / "nowhere.cer"
        with pytest.raises(SigningEngineError, match="Cannot download"):
            install_trust_chain(tmp_path / "wwdr.pem", url=missing.as_uri())
        assert not (tmp_path / "wwdr.pem").exists()


@pytest.mark.skipif(not bundled_chain_path().exists(), reason="no trust chain installed in passforge/certs")
class TestShippedTrustChain:
    def test_shipped_certificate_loads(self):
        chain = load_trust_chain()
        assert chain.certificates
        assert chain.source == str(bundled_chain_path())
