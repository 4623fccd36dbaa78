"""``passforge verify PKPASS`` — check a finished pass archive.

Recomputes every asset digest against the manifest and verifies the
detached signature against the trust chain. Exits 1 unless every check
passes.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from passforge.bridge.trust_chain import load_trust_chain
from passforge.config import ForgeConfig
from passforge.core.errors import PassBuildError
from passforge.core.verifier import verify_archive
from passforge.monitor.renderer import BuildRenderer

console = Console()


def verify_cmd(
    pkpass: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="The pass archive to verify.",
    ),
    trust_chain: Path = typer.Option(
        None,
        "--trust-chain",
        exists=True,
        dir_okay=False,
        help="PEM trust-chain certificate (defaults to the bundled one).",
    ),
) -> None:
    """Verify digests and signature of a pass archive."""
    config = ForgeConfig()
    renderer = BuildRenderer(console=console)
    try:
        chain = load_trust_chain(trust_chain or config.trust_chain_path)
        report = verify_archive(pkpass, chain, config)
    except PassBuildError as exc:
        renderer.print_failure(exc)
        raise typer.Exit(code=1)

    renderer.print_report(report)
    if not report.ok:
        raise typer.Exit(code=1)
