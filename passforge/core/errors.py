"""Build error taxonomy.

Every stage failure is fatal to the current build. Each error carries the
``stage`` at which it was raised so callers can tell input problems
(bad credentials, unreadable assets) from environment problems (signing
engine unavailable, scratch space unusable) without parsing messages.

Messages never contain the credential passphrase.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from passforge.models.build import BuildTransition


class BuildStage(str, Enum):
    """Pipeline stage an error is attributed to."""

    SCRATCH = "scratch_space"
    CREDENTIAL_UNLOCK = "credential_unlock"
    DIGESTING = "digesting"
    MANIFEST_SERIALIZATION = "manifest_serialization"
    SIGNING = "signing"
    ARCHIVE_FINALIZE = "archive_finalize"


class PassBuildError(RuntimeError):
    """Base class for all build failures."""

    default_stage: BuildStage = BuildStage.ARCHIVE_FINALIZE

    def __init__(self, message: str, *, stage: BuildStage | None = None) -> None:
        super().__init__(message)
        self.stage = stage or self.default_stage
        # Filled by the orchestrator with the failed build's history.
        self.build_id: str | None = None
        self.transitions: list[BuildTransition] = []

    @property
    def is_input_error(self) -> bool:
        """True when the caller's inputs, not the environment, are at fault."""
        return isinstance(self, (CredentialError, AssetReadError, SerializationError))


class ScratchSpaceError(PassBuildError):
    """Temporary storage could not be created, written or removed."""

    default_stage = BuildStage.SCRATCH


class CredentialError(PassBuildError):
    """Malformed credential bundle or wrong passphrase."""

    default_stage = BuildStage.CREDENTIAL_UNLOCK


class AssetReadError(PassBuildError):
    """Filesystem failure on a named asset."""

    default_stage = BuildStage.DIGESTING

    def __init__(self, message: str, *, asset: str = "", stage: BuildStage | None = None) -> None:
        super().__init__(message, stage=stage)
        self.asset = asset


class SerializationError(PassBuildError):
    """The manifest could not be encoded."""

    default_stage = BuildStage.MANIFEST_SERIALIZATION


class SigningEngineError(PassBuildError):
    """The cryptographic engine failed or was unavailable."""

    default_stage = BuildStage.SIGNING


class ArchiveError(PassBuildError):
    """Output container write or finalize failure."""

    default_stage = BuildStage.ARCHIVE_FINALIZE
