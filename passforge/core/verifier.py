"""Archive verification — re-check a finished pass archive from the outside.

Checks, in order:
1. The container opens and has no duplicate entries.
2. ``manifest`` and ``signature`` entries are present.
3. The manifest's key set equals the set of asset entries.
4. Every asset entry's digest matches its manifest value.
5. The trust chain is embedded in the signature and the signature
   verifies over the manifest bytes (fail-closed).
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from passforge.bridge.crypto_bridge import chain_is_embedded, verify_signature
from passforge.bridge.trust_chain import TrustChain
from passforge.config import ForgeConfig
from passforge.core.errors import ArchiveError, SerializationError
from passforge.core.hasher import algorithm_for_hex, hex_digest

logger = logging.getLogger(__name__)


class VerificationReport(BaseModel):
    """Outcome of verifying one archive."""

    model_config = ConfigDict(frozen=True)

    entry_names: list[str]
    manifest: dict[str, str]
    missing_from_manifest: list[str] = []
    missing_from_archive: list[str] = []
    digest_mismatches: list[str] = []
    chain_embedded: bool = False
    signature_valid: bool = False

    @property
    def digests_valid(self) -> bool:
        return not (
            self.missing_from_manifest or self.missing_from_archive or self.digest_mismatches
        )

    @property
    def ok(self) -> bool:
        return self.digests_valid and self.chain_embedded and self.signature_valid


def verify_archive(
    archive: bytes | Path,
    trust_chain: TrustChain,
    config: ForgeConfig | None = None,
) -> VerificationReport:
    """Verify a pass archive given as bytes or a file path."""
    cfg = config or ForgeConfig()
    if isinstance(archive, Path):
        try:
            data = archive.read_bytes()
        except OSError as exc:
            raise ArchiveError(f"Cannot read archive {archive}: {exc.strerror}") from exc
    else:
        data = archive

    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            names = zf.namelist()
            contents = {name: zf.read(name) for name in names}
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as exc:
        raise ArchiveError(f"Not a readable zip container: {exc}") from exc

    if len(set(names)) != len(names):
        raise ArchiveError("Container has duplicate entries")
    for required in (cfg.manifest_entry_name, cfg.signature_entry_name):
        if required not in contents:
            raise ArchiveError(f"Container has no {required!r} entry")

    manifest_bytes = contents[cfg.manifest_entry_name]
    signature = contents[cfg.signature_entry_name]
    try:
        manifest = json.loads(manifest_bytes.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise SerializationError(f"Manifest is not valid JSON: {exc}") from exc
    if not isinstance(manifest, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in manifest.items()
    ):
        raise SerializationError("Manifest must map filenames to digest strings")

    assets = {n for n in names if n not in (cfg.manifest_entry_name, cfg.signature_entry_name)}
    mismatches: list[str] = []
    for name in sorted(assets & set(manifest)):
        expected = manifest[name].lower()
        algorithm = algorithm_for_hex(expected)
        if algorithm is None or hex_digest(contents[name], algorithm) != expected:
            mismatches.append(name)

    report = VerificationReport(
        entry_names=names,
        manifest=manifest,
        missing_from_manifest=sorted(assets - set(manifest)),
        missing_from_archive=sorted(set(manifest) - assets),
        digest_mismatches=mismatches,
        chain_embedded=chain_is_embedded(signature, trust_chain),
        signature_valid=verify_signature(manifest_bytes, signature, trust_chain, cfg),
    )
    logger.info(
        "Verified archive: digests=%s chain=%s signature=%s",
        report.digests_valid,
        report.chain_embedded,
        report.signature_valid,
    )
    return report
