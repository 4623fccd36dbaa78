"""``passforge build ASSET_DIR`` — build and sign a pass archive.

Lists ASSET_DIR (sub-directories are skipped), digests and packages every
file, signs the manifest with the credential bundle, and writes the
finished archive to ``--out``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from passforge.config import ForgeConfig
from passforge.core.errors import PassBuildError
from passforge.core.orchestrator import Orchestrator
from passforge.models.identity import SigningIdentity
from passforge.monitor.renderer import BuildRenderer

console = Console()


def build_cmd(
    asset_dir: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=False,
        dir_okay=True,
        help="Directory holding pass.json, images and other pass assets.",
    ),
    credential: Path = typer.Option(
        ...,
        "--credential",
        "-c",
        exists=True,
        dir_okay=False,
        help="PKCS#12 credential bundle (.p12) with the signing key and certificate.",
    ),
    passphrase: str = typer.Option(
        "",
        "--passphrase",
        "-P",
        prompt="Credential passphrase",
        hide_input=True,
        envvar="PASSFORGE_PASSPHRASE",
        help="Unlock passphrase for the credential bundle (may be empty).",
    ),
    out: Path = typer.Option(
        Path("pass.pkpass"),
        "--out",
        "-o",
        help="Where to write the finished archive.",
    ),
    backend: str = typer.Option(
        None,
        "--backend",
        "-b",
        help="Signing backend: native or openssl.",
    ),
    trust_chain: Path = typer.Option(
        None,
        "--trust-chain",
        exists=True,
        dir_okay=False,
        help="PEM trust-chain certificate (defaults to the bundled one).",
    ),
    reproducible: bool = typer.Option(
        None,
        "--reproducible/--timestamped",
        help="Omit the signing time so identical inputs give identical archives.",
    ),
) -> None:
    """Build a signed pass archive from an asset directory."""
    overrides: dict[str, Any] = {
        "signing_backend": backend,
        "trust_chain_path": trust_chain,
        "reproducible_signatures": reproducible,
    }
    try:
        config = ForgeConfig(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as exc:
        console.print(f"[bold red]Invalid option:[/bold red] {exc.errors()[0]['msg']}")
        raise typer.Exit(code=1)

    renderer = BuildRenderer(console=console)
    orchestrator = Orchestrator(config=config)

    try:
        identity = SigningIdentity.from_path(credential, passphrase)
        result = orchestrator.build(asset_dir, identity)
    except PassBuildError as exc:
        renderer.print_failure(exc, exc.transitions)
        raise typer.Exit(code=1)

    try:
        result.write_to(out)
    except OSError as exc:
        console.print(f"[bold red]Cannot write {out}:[/bold red] {exc.strerror}")
        raise typer.Exit(code=1)

    renderer.print_result(result, output=str(out))
