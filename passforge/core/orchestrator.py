"""Build orchestrator — the central coordinator for pass builds.

The Orchestrator wires together the ScratchSpace, BuildMachine, Signing
Adapter, DigestStage, ManifestBuilder and ArchiveComposer into one
strictly sequential build:

    Init -> CredentialStaged -> Unlocked -> Bundled -> Signed -> Finalized

Any stage error moves the build to Failed, discards the container, and is
re-raised to the caller. Scratch space is released on every exit path.
Builds share no mutable state, so independent builds may run concurrently.
"""

from __future__ import annotations

import logging

from passforge.bridge.crypto_bridge import SigningEngine, select_engine
from passforge.bridge.trust_chain import TrustChain, load_trust_chain
from passforge.config import ForgeConfig
from passforge.core.archive_composer import ArchiveComposer
from passforge.core.assets import AssetInput, collect_assets
from passforge.core.build_machine import BuildMachine
from passforge.core.digest_stage import DigestStage
from passforge.core.errors import PassBuildError
from passforge.core.hasher import sha256_hex
from passforge.core.manifest_builder import ManifestBuilder
from passforge.core.scratch_space import ScratchSpace
from passforge.models.build import BuildResult, BuildState, new_build_id
from passforge.models.identity import SigningIdentity

logger = logging.getLogger(__name__)

_STAGED_BUNDLE_NAME = "credential.p12"


class Orchestrator:
    """Builds signed pass archives.

    Parameters
    ----------
    config:
        Build configuration. Uses a fresh ``ForgeConfig`` if not provided.
    engine:
        Signing engine. Selected from ``config.signing_backend`` if None.
    trust_chain:
        Certificates embedded into each signature. Loaded from
        ``config.trust_chain_path`` (or the bundled certificate) if None.
    """

    def __init__(
        self,
        config: ForgeConfig | None = None,
        *,
        engine: SigningEngine | None = None,
        trust_chain: TrustChain | None = None,
    ) -> None:
        self.config = config or ForgeConfig()
        self._engine = engine
        self._trust_chain = trust_chain

    # ------------------------------------------------------------------
    # Collaborators (resolved lazily so a misconfigured engine or missing
    # trust chain fails the build, not the constructor)
    # ------------------------------------------------------------------

    @property
    def engine(self) -> SigningEngine:
        if self._engine is None:
            self._engine = select_engine(self.config)
        return self._engine

    @property
    def trust_chain(self) -> TrustChain:
        if self._trust_chain is None:
            self._trust_chain = load_trust_chain(self.config.trust_chain_path)
        return self._trust_chain

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(
        self,
        assets: AssetInput,
        identity: SigningIdentity,
        *,
        build_id: str | None = None,
    ) -> BuildResult:
        """Build one signed pass archive from *assets* and *identity*.

        *assets* is a directory path, a ``{filename: bytes}`` mapping, or an
        iterable of ``Asset``. Returns a BuildResult only when the build
        reaches FINALIZED; raises a ``PassBuildError`` subclass otherwise,
        carrying the build's ``build_id`` and ``transitions``.
        """
        machine = BuildMachine(build_id or new_build_id())
        cfg = self.config
        composer: ArchiveComposer | None = None

        try:
            with ScratchSpace(cfg.scratch_root) as scratch:
                # Init -> CredentialStaged
                bundle_path = scratch.write_secret(_STAGED_BUNDLE_NAME, identity.bundle)
                machine.transition(BuildState.CREDENTIAL_STAGED)

                # CredentialStaged -> Unlocked
                engine = self.engine
                chain = self.trust_chain
                material = engine.derive_identity(
                    bundle_path, identity.passphrase.get_secret_value(), scratch.path
                )
                machine.transition(BuildState.UNLOCKED)

                # Unlocked -> Bundled
                composer = ArchiveComposer(
                    manifest_name=cfg.manifest_entry_name,
                    signature_name=cfg.signature_entry_name,
                    compress=cfg.compress_entries,
                )
                asset_list = collect_assets(assets)
                entries = DigestStage(
                    cfg.digest_algorithm, chunk_size=cfg.read_chunk_size
                ).run(asset_list, composer)
                manifest, manifest_bytes, manifest_path = ManifestBuilder(
                    cfg.digest_algorithm
                ).emit(entries, scratch, composer)
                machine.transition(BuildState.BUNDLED, output_hash=sha256_hex(manifest_bytes))

                # Bundled -> Signed
                signature = engine.sign_detached(manifest_path, material, chain, scratch.path)
                machine.transition(BuildState.SIGNED, output_hash=sha256_hex(signature))

                composer.write_signature(signature)
                entry_names = composer.entry_names
                archive = composer.finalize()

            # Signed -> Finalized, only once the scratch space is gone
            machine.transition(BuildState.FINALIZED, output_hash=sha256_hex(archive))
        except PassBuildError as exc:
            self._abandon(machine, composer, exc)
            exc.build_id = machine.build_id
            exc.transitions = machine.history
            logger.error("build %s failed at %s: %s", machine.build_id, exc.stage.value, exc)
            raise
        except Exception as exc:
            self._abandon(machine, composer, exc)
            logger.error("build %s failed unexpectedly: %s", machine.build_id, type(exc).__name__)
            raise

        return BuildResult(
            build_id=machine.build_id,
            archive=archive,
            manifest=manifest,
            manifest_bytes=manifest_bytes,
            signature=signature,
            engine=engine.name,
            entry_names=entry_names,
            transitions=machine.history,
        )

    @staticmethod
    def _abandon(
        machine: BuildMachine,
        composer: ArchiveComposer | None,
        error: BaseException,
    ) -> None:
        if composer is not None:
            composer.abort()
        machine.fail(error)
