"""Tests for the identity, manifest and build result models."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest
from pydantic import SecretStr, ValidationError

from passforge.core.errors import CredentialError
from passforge.models.build import BuildResult, BuildState, BuildTransition, new_build_id
from passforge.models.identity import SignerMaterial, SigningIdentity
from passforge.models.manifest import Manifest


class TestSigningIdentity:
    def test_passphrase_hidden(self):
        identity = SigningIdentity(bundle=b"bundle-bytes", passphrase=SecretStr("hunter2"))
        assert "hunter2" not in repr(identity)
        assert "hunter2" not in str(identity)
        assert "bundle-bytes" not in repr(identity)
        assert identity.passphrase.get_secret_value() == "hunter2"

    def test_from_path(self, bundle_file: Path, pki):
        identity = SigningIdentity.from_path(bundle_file, "p")
        assert identity.bundle == pki.bundle

    def test_from_missing_path(self, tmp_path: Path):
        with pytest.raises(CredentialError, match="Cannot read"):
            SigningIdentity.from_path(tmp_path / "absent.p12", "p")

    def test_from_stream(self, pki):
        identity = SigningIdentity.from_stream(io.BytesIO(pki.bundle), "p")
        assert identity.bundle == pki.bundle

    def test_frozen(self):
        identity = SigningIdentity(bundle=b"x")
        with pytest.raises(ValidationError):
            identity.bundle = b"y"


class TestSignerMaterial:
    def test_key_passphrase_hidden(self, tmp_path: Path):
        material = SignerMaterial(
            engine="openssl", key_path=tmp_path / "key.pem", key_passphrase=SecretStr("random-secret")
        )
        assert "random-secret" not in repr(material)


class TestManifest:
    def test_to_bytes_is_canonical(self):
        manifest = Manifest(entries={"b": "2", "a": "1"})
        assert manifest.to_bytes() == b'{"a":"1","b":"2"}'


class TestBuildResult:
    def _result(self) -> BuildResult:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("pass.json", b"{}")
        return BuildResult(
            build_id="pf-test",
            archive=buffer.getvalue(),
            manifest=Manifest(entries={"pass.json": "0" * 64}),
            manifest_bytes=b"{}",
            signature=b"sig",
            engine="native",
            entry_names=["pass.json", "manifest", "signature"],
            transitions=[
                BuildTransition(build_id="pf-test", from_state=BuildState.INIT, to_state=BuildState.CREDENTIAL_STAGED)
            ],
        )

    def test_open_as_stream(self):
        result = self._result()
        with zipfile.ZipFile(result.open()) as zf:
            assert zf.read("pass.json") == b"{}"
        assert result.size_bytes == len(result.archive)

    def test_write_to(self, tmp_path: Path):
        result = self._result()
        target = result.write_to(tmp_path / "out.pkpass")
        assert target.read_bytes() == result.archive

    def test_archive_hidden_from_repr(self):
        assert "archive=" not in repr(self._result())


def test_build_ids_are_unique():
    assert new_build_id().startswith("pf-")
    assert len({new_build_id() for _ in range(50)}) == 50
