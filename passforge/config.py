"""Runtime configuration — env-driven, one instance per process.

Centralized config using pydantic-settings for environment variable
support. Reads from a .env file and PASSFORGE_* environment variables.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ForgeConfig(BaseSettings):
    """Build configuration with environment variable overrides.

    All settings can be overridden via PASSFORGE_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export PASSFORGE_LOG_LEVEL=DEBUG
        export PASSFORGE_SIGNING_BACKEND=openssl
        export PASSFORGE_TRUST_CHAIN_PATH=/etc/passforge/wwdr.pem

    Or via .env file::

        PASSFORGE_DIGEST_ALGORITHM=sha256
        PASSFORGE_REPRODUCIBLE_SIGNATURES=true
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PASSFORGE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Digest Stage: chosen once for the whole process
    digest_algorithm: Literal["sha256", "sha1"] = "sha256"
    read_chunk_size: int = Field(default=64 * 1024, gt=0)

    # Signing Adapter
    signing_backend: Literal["native", "openssl"] = "native"
    openssl_binary: str = "openssl"
    engine_timeout_seconds: float = Field(default=30.0, gt=0)
    reproducible_signatures: bool = False

    # Trust chain: None means the certificate bundled in passforge/certs
    trust_chain_path: Path | None = None

    # Scratch space: None means the system temp directory
    scratch_root: Path | None = None

    # Output container
    manifest_entry_name: str = "manifest"
    signature_entry_name: str = "signature"
    compress_entries: bool = True

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    @property
    def reserved_entry_names(self) -> frozenset[str]:
        """Entry names the container reserves for build outputs."""
        return frozenset({self.manifest_entry_name, self.signature_entry_name})


# Module-level singleton, import as `from passforge.config import config`
config = ForgeConfig()
