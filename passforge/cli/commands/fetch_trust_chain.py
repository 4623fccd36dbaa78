"""``passforge fetch-trust-chain`` — install the issuer's intermediate certificate.

Downloads Apple's WWDR intermediate (published as DER), converts it to PEM
and stores it where builds look for the embedded trust chain.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from passforge.bridge.trust_chain import WWDR_URL, install_trust_chain
from passforge.core.errors import SigningEngineError

console = Console()


def fetch_trust_chain_cmd(
    url: str = typer.Option(
        WWDR_URL,
        "--url",
        help="Where to download the intermediate certificate from.",
    ),
    out: Path = typer.Option(
        None,
        "--out",
        "-o",
        dir_okay=False,
        help="Write the PEM here instead of the bundled location.",
    ),
) -> None:
    """Download and install the trust-chain certificate."""
    try:
        chain = install_trust_chain(out, url=url)
    except SigningEngineError as exc:
        console.print(f"[bold red]Trust chain not installed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(f"[green]Installed[/green] {'; '.join(chain.subjects)}")
    console.print(f"  fingerprint {chain.fingerprints[0]}")
