"""Adversarial tests: credential material must never outlive or escape a build.

The passphrase must not appear in errors, reprs, logs or build history, and
the staged bundle must be gone on every exit path.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import SecretStr

from passforge.core.errors import CredentialError, PassBuildError
from passforge.core.orchestrator import Orchestrator
from passforge.models.assets import Asset
from passforge.models.identity import SigningIdentity

SECRET = "correct-horse-battery-staple"


class TestPassphraseNeverLeaks:
    def test_not_in_error_message(self, orchestrator: Orchestrator, pki, example_assets):
        identity = SigningIdentity(bundle=pki.bundle, passphrase=SecretStr(SECRET))
        with pytest.raises(CredentialError) as excinfo:
            orchestrator.build(example_assets, identity)
        assert SECRET not in str(excinfo.value)
        assert SECRET not in repr(excinfo.value)

    def test_not_in_logs(self, orchestrator: Orchestrator, pki, example_assets, caplog):
        identity = SigningIdentity(bundle=pki.bundle, passphrase=SecretStr(SECRET))
        with caplog.at_level(logging.DEBUG, logger="passforge"):
            with pytest.raises(CredentialError):
                orchestrator.build(example_assets, identity)
        assert caplog.records
        assert SECRET not in caplog.text

    def test_not_in_history(self, orchestrator: Orchestrator, pki, example_assets):
        identity = SigningIdentity(bundle=pki.bundle, passphrase=SecretStr(SECRET))
        with pytest.raises(CredentialError) as excinfo:
            orchestrator.build(example_assets, identity)
        assert excinfo.value.transitions
        for record in excinfo.value.transitions:
            assert SECRET not in record.model_dump_json()

    def test_successful_build_logs_no_secret(self, orchestrator: Orchestrator, identity, example_assets, caplog):
        with caplog.at_level(logging.DEBUG, logger="passforge"):
            result = orchestrator.build(example_assets, identity)
        assert "passphrase" not in caplog.text.lower()
        assert result.build_id in caplog.text


class TestStagedCredentialRemoved:
    @pytest.mark.parametrize(
        "bundle, passphrase",
        [
            (b"garbage", "p"),
            (None, "wrong"),
            (None, ""),
        ],
    )
    def test_no_residue_after_unlock_failure(
        self, orchestrator: Orchestrator, pki, example_assets, scratch_root: Path, bundle, passphrase
    ):
        identity = SigningIdentity(bundle=bundle or pki.bundle, passphrase=SecretStr(passphrase))
        with pytest.raises(CredentialError):
            orchestrator.build(example_assets, identity)
        assert list(scratch_root.iterdir()) == []

    def test_no_residue_after_late_failure(
        self, orchestrator: Orchestrator, identity, scratch_root: Path, tmp_path: Path
    ):
        with pytest.raises(PassBuildError):
            orchestrator.build([Asset(name="missing.png", path=tmp_path / "missing.png")], identity)
        assert list(scratch_root.iterdir()) == []
        assert not list(scratch_root.rglob("*.p12"))
