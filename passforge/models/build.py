"""Build state machine models and the build result."""

from __future__ import annotations

import io
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from passforge.models.manifest import Manifest


class BuildState(str, Enum):
    """Lifecycle of a single pass build."""

    INIT = "init"
    CREDENTIAL_STAGED = "credential_staged"
    UNLOCKED = "unlocked"
    BUNDLED = "bundled"
    SIGNED = "signed"
    FINALIZED = "finalized"
    FAILED = "failed"


# Strictly linear; FAILED is reachable from every non-terminal state.
# Terminal states (FINALIZED, FAILED) have no outgoing transitions.
VALID_TRANSITIONS: dict[BuildState, set[BuildState]] = {
    BuildState.INIT: {BuildState.CREDENTIAL_STAGED, BuildState.FAILED},
    BuildState.CREDENTIAL_STAGED: {BuildState.UNLOCKED, BuildState.FAILED},
    BuildState.UNLOCKED: {BuildState.BUNDLED, BuildState.FAILED},
    BuildState.BUNDLED: {BuildState.SIGNED, BuildState.FAILED},
    BuildState.SIGNED: {BuildState.FINALIZED, BuildState.FAILED},
    BuildState.FINALIZED: set(),  # terminal
    BuildState.FAILED: set(),  # terminal
}


def new_build_id() -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"pf-{ts}-{uuid.uuid4().hex[:6]}"


class BuildTransition(BaseModel):
    """Records a single state transition of a build."""

    model_config = ConfigDict(frozen=True)

    build_id: str
    from_state: BuildState
    to_state: BuildState
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    output_hash: str = ""  # SHA-256 of what the stage produced, if anything
    error_stage: str | None = None  # populated when entering FAILED
    error_type: str | None = None


class BuildResult(BaseModel):
    """A finalized pass archive.

    Only ever produced by a build that reached ``FINALIZED``.
    """

    model_config = ConfigDict(frozen=True)

    build_id: str
    archive: bytes = Field(repr=False)
    manifest: Manifest
    manifest_bytes: bytes = Field(repr=False)
    signature: bytes = Field(repr=False)
    engine: str
    entry_names: list[str]
    transitions: list[BuildTransition] = []

    def open(self) -> io.BytesIO:
        """Return the archive as a readable binary stream."""
        return io.BytesIO(self.archive)

    def write_to(self, path: Path | str) -> Path:
        """Write the archive to *path* (conventionally ``*.pkpass``)."""
        target = Path(path)
        target.write_bytes(self.archive)
        return target

    @property
    def size_bytes(self) -> int:
        return len(self.archive)
