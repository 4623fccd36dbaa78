"""passforge: deterministic builder for signed Apple Wallet pass archives.

v0.1.0:
  - Streaming digest stage (SHA-256 by default, SHA-1 for legacy verifiers)
  - Canonical JSON manifest, written identically to scratch and container
  - Detached CMS/PKCS#7 signatures via ``cryptography`` or an ``openssl`` process
  - Deterministic zip container with enforced write order
  - Build state machine with guaranteed scratch-space cleanup
"""

__version__ = "0.1.0"
__author__ = "CORVUSFORGE, LLC"
__description__ = "Deterministic builder for signed Apple Wallet pass archives"

from passforge.core.orchestrator import Orchestrator
from passforge.core.verifier import verify_archive
from passforge.models.identity import SigningIdentity

__all__ = ["Orchestrator", "SigningIdentity", "verify_archive", "__version__"]
