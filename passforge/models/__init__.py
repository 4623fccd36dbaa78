"""passforge data models — all Pydantic v2, all frozen (immutable)."""

from passforge.models.assets import Asset, DigestEntry
from passforge.models.build import (
    VALID_TRANSITIONS,
    BuildResult,
    BuildState,
    BuildTransition,
)
from passforge.models.identity import SignerMaterial, SigningIdentity
from passforge.models.manifest import Manifest

__all__ = [
    # assets
    "Asset",
    "DigestEntry",
    # manifest
    "Manifest",
    # identity
    "SigningIdentity",
    "SignerMaterial",
    # build
    "BuildState",
    "BuildTransition",
    "BuildResult",
    "VALID_TRANSITIONS",
]
